from passlib.context import CryptContext

from app.config import settings
from app.errors import InvalidInput

BCRYPT_MAX_BYTES = 72

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def _too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > BCRYPT_MAX_BYTES


def hash_password(password: str) -> str:
    if _too_long(password):
        raise InvalidInput(f"Password too long (bcrypt max {BCRYPT_MAX_BYTES} bytes)")
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    # 超長的密碼不可能註冊成功，直接當作不符
    if _too_long(plain_password):
        pwd_context.dummy_verify()
        return False
    return pwd_context.verify(plain_password, hashed_password)


def dummy_verify() -> None:
    """Spend the same time as a real verify, for unknown accounts."""
    pwd_context.dummy_verify()
