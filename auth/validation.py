"""
auth/validation.py -- Format rules for names, emails and passwords.

These run inside the core (CredentialValidator), not only at the API layer,
so every path that creates or rotates a credential enforces them. Each check
raises ValidationFailure with a message that is safe to show the caller.
"""

from __future__ import annotations

import re

from auth.errors import ValidationFailure

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 32
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 255
EMAIL_MAX_LENGTH = 254

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9]+$")
# One "@", no whitespace, a dot in the domain part.
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_name(name: str) -> str:
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        raise ValidationFailure(f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters.")
    if not _NAME_PATTERN.match(name):
        raise ValidationFailure("Name may only contain letters and digits.")
    return name


def validate_email(email: str) -> str:
    if len(email) > EMAIL_MAX_LENGTH or not _EMAIL_PATTERN.match(email):
        raise ValidationFailure("Email is not a valid email address.")
    return email


def validate_password(password: str) -> str:
    """Length bounds only. Character class rules are left to the user."""
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationFailure(f"Password must be at least {PASSWORD_MIN_LENGTH} characters.")
    if len(password) > PASSWORD_MAX_LENGTH:
        raise ValidationFailure(f"Password must be at most {PASSWORD_MAX_LENGTH} characters.")
    return password
