"""
Password hashing for stored account credentials.

Hashes are Argon2 (passlib). Records written by older clients still hold
the plaintext password; those are checked once and then upgraded.
"""

import hmac

from passlib.hash import argon2


def hash_password(password: str) -> str:
    """Hash plain password with Argon2."""
    return argon2.hash(password)


def is_password_hash(encoded: str) -> bool:
    return bool(encoded) and argon2.identify(encoded)


def verify_password(password: str, encoded: str) -> bool:
    """
    Check a password against a stored Argon2 hash.

    Returns False for missing or malformed hashes instead of raising.
    """
    if not is_password_hash(encoded):
        return False

    try:
        return argon2.verify(password, encoded)
    except ValueError:
        return False


def verify_legacy_password(password: str, stored_plaintext: str) -> bool:
    """Constant-time comparison for records that still hold plaintext."""
    return hmac.compare_digest(password.encode("utf-8"), (stored_plaintext or "").encode("utf-8"))
