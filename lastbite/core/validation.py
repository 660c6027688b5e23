"""Field validators shared by the auth and seller verification forms."""
import re

PHONE_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")
MIN_PASSWORD_LENGTH = 6


def validate_phone(value: str) -> str:
    """E.164 phone number, e.g. +15551234567"""
    value = value.strip()
    if not PHONE_PATTERN.match(value):
        raise ValueError("Invalid phone number format")
    return value


def require_min_length(value: str, length: int, message: str) -> str:
    value = value.strip()
    if len(value) < length:
        raise ValueError(message)
    return value


def validate_password(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return value
