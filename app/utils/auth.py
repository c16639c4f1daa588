import logging
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.errors import TokenError, Unauthenticated
from app.models.user import User
from app.services.credentials import CredentialStore
from app.utils.tokens import TokenIssuer, TokenVerifier

logger = logging.getLogger("app.auth")

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer(
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
        lifetime=timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS),
    )


@lru_cache
def get_token_verifier() -> TokenVerifier:
    return TokenVerifier(
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
        leeway=timedelta(seconds=settings.TOKEN_LEEWAY_SECONDS),
    )


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> str:
    """
    Gate for every protected route: no valid bearer token, no business logic.
    Why the token failed is logged here and never sent back.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Missing bearer token")
    try:
        return verifier.verify(credentials.credentials)
    except TokenError as e:
        logger.info("Rejected token (%s): %s", e.reason, e)
        raise Unauthenticated("Invalid authentication token") from e


def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    user = CredentialStore(db).get(user_id)
    if user is None:
        raise Unauthenticated("User not found")
    return user
