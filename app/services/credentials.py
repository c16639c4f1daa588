import logging
import re
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import DuplicateEmail, InvalidCredentials, InvalidInput
from app.models.user import User
from app.utils.hashing import dummy_verify, hash_password, verify_password

logger = logging.getLogger("app.auth")

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore:
    """Users and their hashed secrets."""

    def __init__(self, db: Session, min_secret_length: int = settings.MIN_PASSWORD_LENGTH):
        self.db = db
        self.min_secret_length = min_secret_length

    def register(self, name: str, email: str, raw_secret: str) -> User:
        name = (name or "").strip()
        email = normalize_email(email or "")
        raw_secret = raw_secret or ""

        if not name:
            raise InvalidInput("name is required")
        if not EMAIL_RE.match(email):
            raise InvalidInput("email is not valid")
        if len(raw_secret) < self.min_secret_length:
            raise InvalidInput(f"password must be at least {self.min_secret_length} characters")

        if self._by_email(email) is not None:
            raise DuplicateEmail("Email already registered")

        user = User(name=name, email=email, password_hash=hash_password(raw_secret))
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # 同時註冊同一個 email，輸的那一個
            self.db.rollback()
            raise DuplicateEmail("Email already registered")
        self.db.refresh(user)
        logger.info("Registered user %s", user.id)
        return user

    def verify(self, email: str, raw_secret: str) -> User:
        user = self._by_email(normalize_email(email or ""))
        if user is None:
            dummy_verify()
            logger.info("Login failed: unknown account")
            raise InvalidCredentials("Invalid credentials")
        if not verify_password(raw_secret or "", user.password_hash):
            logger.info("Login failed for user %s: wrong secret", user.id)
            raise InvalidCredentials("Invalid credentials")
        return user

    def get(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    def _by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()
