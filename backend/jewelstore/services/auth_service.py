# Overview: Password hashing and credential checks for shop staff and super admins.

"""
Authentication Service

Uses bcrypt for password hashing and validates password strength when a
password is set. Usernames are global so login needs no shop code; the shop
context comes from the user row.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, with upper, lower, digit and special character
- Users of a deactivated or deleted shop cannot log in
"""

import re

import bcrypt

from ..extensions import db
from ..models import User
from ..permissions import Role
from ..time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthenticationError(Exception):
    """Raised when credentials are wrong or the account cannot log in."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str, *, rounds: int = 12) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def authenticate(username: str, password: str) -> User:
    """
    Check credentials and return the user.

    Updates last_login_at on success. Raises AuthenticationError with a
    generic message for unknown users and wrong passwords alike.
    """
    user = db.session.query(User).filter(User.username == username).first()

    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid username or password")

    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    if user.role != Role.SUPER_ADMIN:
        shop = user.shop
        if shop is None or not shop.is_active or shop.deleted_at is not None:
            raise AuthenticationError("Shop is deactivated. Please contact support.")

    user.last_login_at = utcnow()
    db.session.commit()
    return user
