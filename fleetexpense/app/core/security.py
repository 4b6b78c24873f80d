"""
Password hashing helpers.

Thin wrappers over ``werkzeug.security``; hashes are self-describing
(``scrypt:N:r:p$salt$hash``), so stored hashes keep verifying if the
default method changes.
"""

from werkzeug.security import generate_password_hash, check_password_hash


def get_password_hash(password: str) -> str:
    """Hash a plain-text password with a fresh random salt."""
    return generate_password_hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain-text password against a stored hash."""
    return check_password_hash(hashed_password, plain_password)
