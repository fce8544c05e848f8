# Overview: Account creation and password authentication.

"""
Authentication Service

WHY: Every item, sale and movement belongs to one business account, so
every request must be attributable. Uses bcrypt for password hashing and
validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12 unless BCRYPT_ROUNDS says otherwise)
- Minimum 8 characters, with upper/lower case, digit and special char
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
import re

from flask import current_app

from ..errors import AuthenticationError, ConflictError, ValidationError
from ..extensions import db
from ..models import User
from ..time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
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

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt (cost factor BCRYPT_ROUNDS, default 12).

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Returns True if password matches hash, False otherwise."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in database
        return False


def create_user(
    username: str,
    email: str,
    password: str,
    business_name: str | None = None,
) -> User:
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email:
        raise ValidationError("username and email are required")
    if "@" not in email:
        raise ValidationError("email is not valid")

    if db.session.query(User).filter_by(username=username).first():
        raise ConflictError("Username already taken", field="username")
    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("Email already registered", field="email")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        business_name=business_name,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(identifier: str, password: str) -> User:
    """
    Check credentials; identifier may be username or email.

    The same error is raised for unknown user and wrong password.
    """
    identifier = (identifier or "").strip()
    user = db.session.query(User).filter(
        (User.username == identifier) | (User.email == identifier.lower())
    ).first()

    if user is None or not verify_password(password or "", user.password_hash):
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def get_user_by_username(username: str) -> User | None:
    return db.session.query(User).filter_by(username=username).first()
