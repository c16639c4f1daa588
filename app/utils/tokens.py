"""Stateless access tokens.

A token is a compact HS256 JWS carrying ``sub``, ``iat`` and ``exp``. Issuing
and verifying need nothing but the shared secret and a clock, so any instance
of any service holding the same ``JWT_SECRET`` can check any token without
calling back to the service that issued it.
"""
import calendar
import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from jose import jwk, jws, jwt
from jose.exceptions import JWSError
from jose.utils import base64url_decode, base64url_encode

from app.errors import BadSignature, Expired, MalformedToken

Clock = Callable[[], datetime]

DEFAULT_LIFETIME = timedelta(hours=24)
DEFAULT_LEEWAY = timedelta(seconds=60)
# matches enrollments.user_id
MAX_SUBJECT_LENGTH = 255


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _timestamp(dt: datetime) -> int:
    # naive datetimes are taken as UTC
    return calendar.timegm(dt.utctimetuple())


def _from_timestamp(ts: int) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


@dataclass(frozen=True)
class IssuedToken:
    token: str
    subject: str
    issued_at: datetime
    expires_at: datetime


class TokenIssuer:
    """Mints signed, time-bounded identity assertions."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime: timedelta = DEFAULT_LIFETIME,
        clock: Clock = utc_now,
    ):
        self._secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime
        self._clock = clock

    def issue(self, user_id: str) -> IssuedToken:
        issued_at = _timestamp(self._clock())
        expires_at = issued_at + int(self.lifetime.total_seconds())
        claims = {"sub": user_id, "iat": issued_at, "exp": expires_at}
        token = jwt.encode(claims, self._secret, algorithm=self.algorithm)
        return IssuedToken(
            token=token,
            subject=user_id,
            issued_at=_from_timestamp(issued_at),
            expires_at=_from_timestamp(expires_at),
        )


class TokenVerifier:
    """Checks a token's signature, structure and validity window.

    The MAC is checked over the raw ``header.payload`` text before anything
    is decoded, and only the canonical base64url form of the signature is
    accepted. Any change to the bytes of a signed token therefore fails with
    ``BadSignature``; ``MalformedToken`` is left for input that is not a
    compact token at all, or for authentic tokens whose claims are unusable.

    ``verify`` keeps no state between calls. Failures raise one of
    ``MalformedToken``, ``BadSignature`` or ``Expired``.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        leeway: timedelta = DEFAULT_LEEWAY,
        clock: Clock = utc_now,
    ):
        self._secret = secret
        self._key = jwk.construct(secret, algorithm)
        self.algorithm = algorithm
        self.leeway = leeway
        self._clock = clock

    def verify(self, token: str) -> str:
        if not isinstance(token, str) or "." not in token:
            raise MalformedToken("not a compact token")

        signing_input, _, crypto_segment = token.rpartition(".")
        try:
            signing_bytes = signing_input.encode("utf-8")
            crypto_bytes = crypto_segment.encode("utf-8")
        except UnicodeEncodeError as e:
            raise MalformedToken("token is not text") from e

        if not self._signature_matches(signing_bytes, crypto_bytes):
            raise BadSignature("signature verification failed")

        # the MAC matched, so from here on the content is ours but may be unusable
        if signing_input.count(".") != 1:
            raise MalformedToken("expected header.payload.signature")
        try:
            payload = jws.verify(token, self._secret, algorithms=[self.algorithm])
        except JWSError as e:
            raise MalformedToken(str(e)) from e

        claims = _parse_claims(payload)

        now = _timestamp(self._clock())
        leeway = int(self.leeway.total_seconds())
        if claims["iat"] > now + leeway:
            raise MalformedToken("token issued in the future")
        if now > claims["exp"] + leeway:
            raise Expired(f"token expired at {claims['exp']}")
        return claims["sub"]

    def _signature_matches(self, signing_input: bytes, crypto_segment: bytes) -> bool:
        try:
            signature = base64url_decode(crypto_segment)
        except ValueError:
            return False
        # the decoder skips stray characters and ignores trailing bits
        if base64url_encode(signature) != crypto_segment:
            return False
        return self._key.verify(signing_input, signature)


def _parse_claims(payload: bytes) -> dict:
    try:
        claims = json.loads(payload)
    except ValueError as e:
        raise MalformedToken("payload is not JSON") from e
    if not isinstance(claims, dict):
        raise MalformedToken("payload is not an object")

    sub = claims.get("sub")
    if not isinstance(sub, str) or not sub:
        raise MalformedToken("missing subject")
    if len(sub) > MAX_SUBJECT_LENGTH:
        raise MalformedToken("subject too long")
    for name in ("iat", "exp"):
        value = claims.get(name)
        if not isinstance(value, int) or isinstance(value, bool):
            raise MalformedToken(f"missing or invalid '{name}'")
    return claims
