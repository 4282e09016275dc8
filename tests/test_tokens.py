# tests/test_tokens.py

from __future__ import annotations

import base64
from datetime import timedelta

import pytest
from jose import jwt

from taskmanager.errors import InvalidToken
from taskmanager.tokens import TokenService

from .fakes import SECRET


def _b64decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _flip_bit(token: str, segment_index: int, bit: int) -> str:
    segments = token.split(".")
    raw = bytearray(_b64decode(segments[segment_index]))
    raw[(bit // 8) % len(raw)] ^= 1 << (bit % 8)
    segments[segment_index] = _b64encode(bytes(raw))
    return ".".join(segments)


def test_issue_then_verify_round_trips_identity(tokens, clock) -> None:
    token = tokens.issue(42, "alice@x.com")

    claims = tokens.verify(token)

    assert claims.user_id == 42
    assert claims.email == "alice@x.com"
    assert claims.issued_at == clock.now().replace(microsecond=0)
    assert claims.expires_at - claims.issued_at == timedelta(hours=24)
    assert tokens.extract_user_id(token) == 42


def test_token_valid_until_expiry_then_rejected(tokens, clock) -> None:
    token = tokens.issue(7, "bob@x.com")

    clock.advance(timedelta(hours=24) - timedelta(seconds=1))
    assert tokens.extract_user_id(token) == 7

    clock.advance(timedelta(seconds=1))
    with pytest.raises(InvalidToken):
        tokens.verify(token)
    with pytest.raises(InvalidToken):
        tokens.extract_user_id(token)


def test_custom_expiry_is_honoured(clock) -> None:
    service = TokenService(SECRET, clock, expires_in=timedelta(minutes=5))
    token = service.issue(1, "a@x.com")

    clock.advance(timedelta(minutes=6))

    with pytest.raises(InvalidToken):
        service.verify(token)


@pytest.mark.parametrize("segment_index", [0, 1, 2])
@pytest.mark.parametrize("bit", [0, 9, 77, 130])
def test_single_bit_corruption_is_rejected(tokens, segment_index: int, bit: int) -> None:
    token = tokens.issue(42, "alice@x.com")
    corrupted = _flip_bit(token, segment_index, bit)
    assert corrupted != token

    with pytest.raises(InvalidToken):
        tokens.verify(corrupted)


def test_forged_payload_with_original_signature_is_rejected(tokens) -> None:
    header, _, signature = tokens.issue(42, "alice@x.com").split(".")
    forged_payload = _b64encode(b'{"sub":"1","email":"alice@x.com","iat":1710504000,"exp":4102444800}')

    with pytest.raises(InvalidToken):
        tokens.verify(f"{header}.{forged_payload}.{signature}")


def test_token_signed_with_another_key_is_rejected(tokens, clock) -> None:
    other = TokenService("some-other-secret", clock)

    with pytest.raises(InvalidToken):
        tokens.verify(other.issue(42, "alice@x.com"))


@pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c", "....", "\x00\xff", None, 12345, b"bytes"])
def test_malformed_input_fails_with_invalid_token(tokens, garbage) -> None:
    with pytest.raises(InvalidToken):
        tokens.verify(garbage)


@pytest.mark.parametrize(
    "claims",
    [
        {"email": "a@x.com", "iat": 1710504000, "exp": 4102444800},
        {"sub": "1", "iat": 1710504000, "exp": 4102444800},
        {"sub": "abc", "email": "a@x.com", "iat": 1710504000, "exp": 4102444800},
        {"sub": "1", "email": "a@x.com", "iat": 1710504000},
    ],
)
def test_missing_or_malformed_claims_are_rejected(tokens, claims: dict) -> None:
    token = jwt.encode(claims, SECRET, algorithm="HS256")

    with pytest.raises(InvalidToken):
        tokens.verify(token)


def test_empty_secret_key_is_refused(clock) -> None:
    with pytest.raises(ValueError):
        TokenService("", clock)
