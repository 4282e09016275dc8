import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import crud, models
from .database import transaction
from .errors import ConflictError, InvalidToken, UnauthorizedError
from .passwords import PasswordHasher
from .tokens import TokenService
from .validation import MAX_USERNAME_LENGTH, require_text, validate_email, validate_password

logger = logging.getLogger(__name__)

DEFAULT_LIST_NAME = "My Tasks"
BEARER_PREFIX = "Bearer "

INVALID_CREDENTIALS = "invalid email or password"
INVALID_TOKEN = "authentication required: missing, invalid or expired token"


@dataclass(frozen=True)
class AuthResult:
    token: str
    user_id: int
    username: str
    email: str


def register_user(db: Session, hasher: PasswordHasher, username: str, email: str, password: str) -> models.User:
    """Create a user together with its default task list.

    Both rows are written in one transaction; if the default list cannot be
    created the user is rolled back as well.
    """
    username = require_text(username, "username", MAX_USERNAME_LENGTH)
    email = validate_email(email)
    validate_password(password)

    if crud.get_user_by_email(db, email):
        raise ConflictError("email already registered")
    if crud.get_user_by_username(db, username):
        raise ConflictError("username already taken")

    hashed = hasher.hash(password)
    try:
        with transaction(db):
            user = crud.create_user(db, username, email, hashed)
            crud.create_list(db, user.id, DEFAULT_LIST_NAME, is_default=True)
    except IntegrityError as exc:
        # lost a race against a concurrent registration
        raise ConflictError("email or username already registered") from exc

    logger.info("Registered user id=%s email=%s", user.id, email)
    return user


def authenticate_user(db: Session, hasher: PasswordHasher, tokens: TokenService,
                      email: str, password: str) -> AuthResult:
    user = crud.get_user_by_email(db, (email or "").strip().lower())
    if not user or not hasher.verify(password or "", user.hashed_password):
        logger.warning("Failed login attempt for email=%s", email)
        raise UnauthorizedError(INVALID_CREDENTIALS)

    token = tokens.issue(user.id, user.email)
    logger.info("User id=%s logged in", user.id)
    return AuthResult(token=token, user_id=user.id, username=user.username, email=user.email)


def resolve_caller(tokens: TokenService, authorization: Optional[str]) -> int:
    """Turn an ``Authorization`` header value into a verified user id."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise UnauthorizedError(INVALID_TOKEN)
    token = authorization[len(BEARER_PREFIX):].strip()
    try:
        return tokens.extract_user_id(token)
    except InvalidToken as exc:
        logger.debug("Rejected token: %s", exc.message)
        raise UnauthorizedError(INVALID_TOKEN) from exc
