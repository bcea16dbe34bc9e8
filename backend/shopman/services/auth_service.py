# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Every stock movement, sale and expense is attributed to a user, so accounts
are the root of the audit trail. Uses bcrypt for password hashing and
validates password strength.

FIRST-USER BOOTSTRAP:
The first account ever created receives the "admin" role; every later
account receives "user". The decision is taken inside the same transaction
that inserts the account, after locking the role rows, so two concurrent
sign-ups cannot both become admin on databases that honor row locks.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
import re

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User, Profile, Role, UserRole
from ..permissions import ADMIN_ROLE, USER_ROLE, DEFAULT_ROLE_DESCRIPTIONS
from ..validation import ConflictError, NotFoundError, ValidationError
from .concurrency import lock_for_update
from shopman.time_utils import utcnow


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
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
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. Malformed hashes verify as False.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str | None) -> str:
    value = (email or "").strip().lower()
    if not value or not EMAIL_PATTERN.match(value):
        raise ValidationError("A valid email is required")
    if len(value) > 255:
        raise ValidationError("email exceeds max length 255")
    return value


def create_default_roles() -> int:
    """Create the admin and user roles if they don't exist. Returns count created."""
    created = 0
    for name, desc in DEFAULT_ROLE_DESCRIPTIONS.items():
        existing = db.session.query(Role).filter_by(name=name).first()
        if not existing:
            db.session.add(Role(name=name, description=desc))
            created += 1

    db.session.commit()
    return created


def ensure_access_control_seeded() -> None:
    """Roles, permissions and default grants, all idempotent."""
    from . import permission_service

    create_default_roles()
    permission_service.initialize_permissions()
    permission_service.assign_default_role_permissions()


def register_user(email: str, password: str, full_name: str | None = None) -> User:
    """
    Create an account with its profile and bootstrap role.

    Raises:
        ValidationError: malformed email
        PasswordValidationError: weak password
        ConflictError: email already registered
    """
    email = normalize_email(email)
    password_hash = hash_password(password)
    full_name = (full_name or "").strip()[:255] or None

    ensure_access_control_seeded()

    # Serialize concurrent sign-ups on the role rows (honored outside SQLite).
    roles = {
        role.name: role
        for role in lock_for_update(db.session.query(Role).filter(Role.name.in_([ADMIN_ROLE, USER_ROLE]))).all()
    }

    if db.session.query(User.id).filter(User.email == email).first():
        db.session.rollback()
        raise ConflictError("Email is already registered")

    user = User(email=email, password_hash=password_hash, is_active=True)
    user.profile = Profile(full_name=full_name)
    db.session.add(user)

    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email is already registered")

    other_accounts = db.session.query(User.id).filter(User.id != user.id).count()
    role_name = USER_ROLE if other_accounts else ADMIN_ROLE

    db.session.add(UserRole(user_id=user.id, role_id=roles[role_name].id))
    db.session.commit()

    if role_name == ADMIN_ROLE:
        current_app.logger.info("First account %s registered; granted %s role", email, ADMIN_ROLE)
    else:
        current_app.logger.info("Account %s registered with %s role", email, role_name)

    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    email = (email or "").strip().lower()
    if not email or not password:
        return None

    user = db.session.query(User).filter(
        User.email == email,
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def update_profile(user_id: int, full_name: str | None) -> User:
    """Update the caller's own display name."""
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    name = (full_name or "").strip()
    if len(name) > 255:
        raise ValidationError("full_name exceeds max length 255")

    if user.profile is None:
        user.profile = Profile(full_name=name or None)
    else:
        user.profile.full_name = name or None

    db.session.commit()
    return user


def set_user_role(user_id: int, role_name: str) -> User:
    """
    Replace a user's roles with exactly one role.

    The last remaining admin cannot be demoted.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise ValidationError(f"Unknown role: {role_name}")

    current = {ur.role.name for ur in user.user_roles if ur.role}
    if ADMIN_ROLE in current and role_name != ADMIN_ROLE:
        admin_count = (
            db.session.query(UserRole)
            .join(Role, Role.id == UserRole.role_id)
            .filter(Role.name == ADMIN_ROLE)
            .count()
        )
        if admin_count <= 1:
            raise ConflictError("Cannot remove the last admin")

    db.session.query(UserRole).filter(
        UserRole.user_id == user_id,
        UserRole.role_id != role.id,
    ).delete(synchronize_session=False)

    if role_name not in current:
        db.session.add(UserRole(user_id=user_id, role_id=role.id))

    db.session.commit()
    db.session.refresh(user)
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.id.asc()).all()
