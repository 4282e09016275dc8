"""Input validation shared by the services."""

from typing import Optional

from email_validator import EmailNotValidError
from email_validator import validate_email as check_email_address

from .errors import ValidationError

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_BYTES = 72  # bcrypt ignores anything past this
MAX_USERNAME_LENGTH = 50
MAX_EMAIL_LENGTH = 100
MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 5000
MAX_LIST_NAME_LENGTH = 100


def validate_email(email: Optional[str]) -> str:
    email = (email or "").strip()
    try:
        email = check_email_address(email, check_deliverability=False).normalized.lower()
    except EmailNotValidError as exc:
        raise ValidationError(f"invalid email format: {exc}") from exc
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError(f"email must be at most {MAX_EMAIL_LENGTH} characters")
    return email


def validate_password(password: Optional[str]) -> str:
    if password is None or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return password


def require_text(value: Optional[str], field: str, max_length: int) -> str:
    """Trim ``value`` and reject it when blank or too long."""
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field} must not be blank")
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value


def validate_description(description: Optional[str]) -> Optional[str]:
    if description is not None and len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f"description must be at most {MAX_DESCRIPTION_LENGTH} characters")
    return description
