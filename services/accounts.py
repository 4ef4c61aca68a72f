"""
Account bootstrap and role management.

Account creation and role assignment are separate commits. If the role
write fails the account is kept without a role; the failure is logged and
not retried. Such an account is treated as a plain user awaiting approval.
"""
from __future__ import annotations

from typing import Optional, Tuple
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth import get_password_hash
from models.user import User, UserRole, UserStatus, UserRoleAssignment

logger = logging.getLogger(__name__)


class AccountExistsError(ValueError):
    pass


def has_any_role_assignment(db: Session) -> bool:
    return db.query(UserRoleAssignment.id).first() is not None


def create_account(db: Session, email: str, password: str, full_name: Optional[str] = None) -> User:
    email = email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise AccountExistsError("A user with this email address has already been registered")

    user = User(
        email=email,
        password=get_password_hash(password),
        full_name=full_name,
        status=UserStatus.ACTIVE,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def grant_role(db: Session, user: User, role: UserRole) -> bool:
    """Insert a role assignment. Returns False (after logging) when the write fails."""
    try:
        db.add(UserRoleAssignment(user_id=user.id, role=role))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Role assignment failed for {user.email}: {e}")
        return False
    db.refresh(user)
    return True


def register_account(
    db: Session, email: str, password: str, full_name: Optional[str] = None
) -> Tuple[User, bool, Optional[UserRole]]:
    """Sign up: the very first account becomes super admin, later ones plain users.

    The returned role is None when the account was created but the role
    write failed.
    """
    is_first_user = not has_any_role_assignment(db)
    user = create_account(db, email, password, full_name)

    role = UserRole.SUPER_ADMIN if is_first_user else UserRole.USER
    if not grant_role(db, user, role):
        logger.warning(f"Registered {user.email} without a role")
        return user, is_first_user, None

    logger.info(f"Registered {user.email} as {role.value}")
    return user, is_first_user, role


def change_role(db: Session, user: User, role: UserRole) -> User:
    """Replace a user's roles with ``role``. A super admin assignment is never removed."""
    for assignment in list(user.role_assignments):
        if assignment.role != UserRole.SUPER_ADMIN and assignment.role != role:
            db.delete(assignment)

    if role not in user.roles:
        db.add(UserRoleAssignment(user_id=user.id, role=role))

    db.commit()
    db.refresh(user)
    return user


def ensure_super_admin(db: Session, email: str, password: str) -> Tuple[User, bool]:
    """Create the configured super admin, or repair its missing role. Returns (user, created)."""
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if user is not None:
        if UserRole.SUPER_ADMIN not in user.roles:
            grant_role(db, user, UserRole.SUPER_ADMIN)
        return user, False

    user = create_account(db, email, password, full_name="Super Admin")
    grant_role(db, user, UserRole.SUPER_ADMIN)
    return user, True
