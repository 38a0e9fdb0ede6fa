"""
Validation for account inputs.
Applied inside the session store regardless of what the form already checked.
"""

import re
from typing import Tuple

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6


def validate_email(email: str) -> Tuple[bool, str | None]:
    """
    Validate email shape (local@domain.tld).

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email:
        return False, "Email is required"

    if not EMAIL_PATTERN.match(email):
        return False, "Please enter a valid email address."

    return True, None


def validate_password(password: str, min_length: int = MIN_PASSWORD_LENGTH) -> Tuple[bool, str | None]:
    """
    Validate password length.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not password:
        return False, "Password is required"

    if len(password) < min_length:
        return False, f"Password must be at least {min_length} characters"

    return True, None


def is_valid_phone(phone: str) -> bool:
    """Ten digits, or twelve digits starting with the 91 country code."""
    cleaned = re.sub(r"\D", "", phone or "")
    return len(cleaned) == 10 or (len(cleaned) == 12 and cleaned.startswith("91"))


def format_phone_number(phone: str) -> str:
    """
    Normalise an Indian mobile number to +91XXXXXXXXXX.

    Examples:
        >>> format_phone_number("98765 43210")
        '+919876543210'

        >>> format_phone_number("91-9876543210")
        '+919876543210'

    Returns the input unchanged when the format is unclear.
    """
    cleaned = re.sub(r"\D", "", phone or "")

    if len(cleaned) == 10:
        return f"+91{cleaned}"

    if len(cleaned) == 12 and cleaned.startswith("91"):
        return f"+{cleaned}"

    return phone
