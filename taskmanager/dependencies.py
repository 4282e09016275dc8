from datetime import timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from . import auth, config, database
from .clock import SystemClock, resolve_timezone
from .passwords import PasswordHasher
from .tokens import TokenService


def get_db():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache
def get_clock() -> SystemClock:
    return SystemClock(resolve_timezone(config.TIMEZONE))


@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=config.BCRYPT_ROUNDS)


@lru_cache
def get_token_service() -> TokenService:
    return TokenService(
        config.require_secret_key(),
        get_clock(),
        expires_in=timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES),
        algorithm=config.ALGORITHM,
    )


def get_current_user_id(
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> int:
    return auth.resolve_caller(tokens, authorization)
