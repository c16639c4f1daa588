from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.schemas.common import Envelope, ok
from app.schemas.user import RegisterOut, TokenOut, UserCreate, UserLogin, UserOut
from app.services.credentials import CredentialStore
from app.utils.auth import get_current_user, get_token_issuer
from app.utils.tokens import TokenIssuer

import logging
logger = logging.getLogger("app.auth")


router = APIRouter(prefix="/auth", tags=["Auth"])
me_router = APIRouter(tags=["Auth"])


# 註冊
@router.post("/register", response_model=Envelope[RegisterOut], status_code=201)
def register(body: UserCreate, db: Session = Depends(get_db)):
    user = CredentialStore(db).register(body.name, body.email, body.raw_secret)
    return ok(RegisterOut(user_id=user.id))


# 登入
@router.post("/login", response_model=Envelope[TokenOut])
def login(
    body: UserLogin,
    db: Session = Depends(get_db),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    user = CredentialStore(db).verify(body.email, body.raw_secret)
    issued = issuer.issue(user.id)
    logger.info("User %s logged in", user.id)
    return ok(TokenOut(token=issued.token, expires_at=issued.expires_at))


# 取得使用者資料
@me_router.get("/me", response_model=Envelope[UserOut])
def get_me(current_user: User = Depends(get_current_user)):
    return ok(UserOut.model_validate(current_user))
