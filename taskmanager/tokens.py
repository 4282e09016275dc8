"""Signed, self-expiring identity tokens (JWT via python-jose)."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JOSEError, jwt

from .clock import Clock
from .errors import InvalidToken

DEFAULT_EXPIRES_IN = timedelta(hours=24)


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    email: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """Issues and verifies HS256 tokens.

    Expiry is judged against the injected clock rather than python-jose's own
    wall-clock check, so tests can move time forward deterministically.
    """

    def __init__(self, secret_key: str, clock: Clock, expires_in: timedelta = DEFAULT_EXPIRES_IN,
                 algorithm: str = "HS256"):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key
        self._clock = clock
        self._expires_in = expires_in
        self._algorithm = algorithm

    def issue(self, user_id: int, email: str) -> str:
        issued_at = int(self._clock.now().timestamp())
        expires_at = issued_at + int(self._expires_in.total_seconds())
        to_encode = {"sub": str(user_id), "email": email, "iat": issued_at, "exp": expires_at}
        return jwt.encode(to_encode, self._secret_key, algorithm=self._algorithm)

    def verify(self, token) -> TokenClaims:
        if not isinstance(token, str) or not token:
            raise InvalidToken("token is missing")
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
        except JOSEError as exc:
            raise InvalidToken(f"token could not be decoded: {exc}") from exc

        claims = _parse_claims(payload)
        if self._clock.now() >= claims.expires_at:
            raise InvalidToken("token has expired")
        return claims

    def extract_user_id(self, token) -> int:
        return self.verify(token).user_id


def _parse_claims(payload) -> TokenClaims:
    if not isinstance(payload, dict):
        raise InvalidToken("token payload is not an object")
    sub = payload.get("sub")
    email = payload.get("email")
    iat = payload.get("iat")
    exp = payload.get("exp")
    if not isinstance(sub, str) or not (sub.isascii() and sub.isdigit()):
        raise InvalidToken("token subject is malformed")
    if not isinstance(email, str) or not email:
        raise InvalidToken("token email is malformed")
    for value in (iat, exp):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidToken("token timestamps are malformed")
    try:
        issued_at = datetime.fromtimestamp(iat, tz=timezone.utc)
        expires_at = datetime.fromtimestamp(exp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise InvalidToken("token timestamps are out of range") from exc
    return TokenClaims(user_id=int(sub), email=email, issued_at=issued_at, expires_at=expires_at)
