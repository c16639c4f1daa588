from datetime import datetime

from app.schemas.common import ApiModel


class UserCreate(ApiModel):
    name: str
    email: str
    raw_secret: str


class UserLogin(ApiModel):
    email: str
    raw_secret: str


class RegisterOut(ApiModel):
    user_id: str


class TokenOut(ApiModel):
    token: str
    token_type: str = "bearer"
    expires_at: datetime


class UserOut(ApiModel):
    id: str
    name: str
    email: str
