# Overview: Service-layer operations for auth; staff accounts and password checks.

"""
Authentication Service

MULTI-TENANT: Users belong to exactly one organization (org_id).
Username/email uniqueness is tenant-scoped.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters with at least one letter and one digit
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt

from ..extensions import db
from ..models import Organization, User
from kickledger.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")
    if not re.search(r"[A-Za-z]", password):
        raise PasswordValidationError("Password must contain at least one letter")
    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_user(username: str, email: str, password: str, org_id: int) -> User:
    """
    Create a staff user in an organization.

    Raises:
        ValueError: org missing or inactive, or username/email taken in the org
        PasswordValidationError: weak password
    """
    org = db.session.query(Organization).filter_by(id=org_id).first()
    if not org:
        raise ValueError("Organization not found")
    if not org.is_active:
        raise ValueError("Organization is not active")

    existing = db.session.query(User).filter(
        User.org_id == org_id,
        db.or_(User.username == username, User.email == email),
    ).first()
    if existing:
        raise ValueError("Username or email already exists in this organization")

    user = User(
        org_id=org_id,
        username=username,
        email=email,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str, org_id: int | None = None) -> User | None:
    """
    Check credentials (username or email) and stamp last_login_at.

    Returns None for unknown users, wrong passwords, inactive users and
    inactive organizations.
    """
    query = db.session.query(User).filter(
        db.or_(User.username == username, User.email == username),
        User.is_active.is_(True),
    )
    if org_id is not None:
        query = query.filter(User.org_id == org_id)

    user = query.first()
    if not user:
        return None

    org = db.session.query(Organization).filter_by(id=user.org_id).first()
    if not org or not org.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
