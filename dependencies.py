from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer
from sqlalchemy.orm import Session, selectinload

from config.settings import settings
from database import get_db
from models.user import User, UserRole, UserStatus, STAFF_ROLES
from auth import verify_token
from utils.function_errors import FunctionError

# Security schemes - Only JWT Bearer token
security = HTTPBearer()


def _load_user(db: Session, token: str) -> Optional[User]:
    payload = verify_token(token)
    if not payload or not payload.get("sub"):
        return None
    return (
        db.query(User)
        .options(selectinload(User.role_assignments))
        .filter(User.email == payload["sub"])
        .first()
    )


def require_configured():
    """Refuse to issue or accept tokens without a database URL and a signing key."""
    if not settings.is_configured:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfigured"
        )


def get_current_user(
    _: None = Depends(require_configured),
    credentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user using JWT token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user = _load_user(db, credentials.credentials)
    if user is None:
        raise credentials_exception

    return user

def get_current_active_user(current_user: User = Depends(get_current_user)):
    """Get current active user."""
    if current_user.status != UserStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )
    return current_user

def require_role(*allowed_roles: UserRole):
    """Dependency to require one of the given roles."""
    def role_checker(current_user: User = Depends(get_current_active_user)):
        if not current_user.has_role(*allowed_roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return current_user
    return role_checker

# Common role dependencies
require_admin = require_role(*STAFF_ROLES)
require_superadmin = require_role(UserRole.SUPER_ADMIN)


def require_function_admin(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> User:
    """Caller of an administrative function: bearer token of an active admin.

    Header presence is checked before configuration so an anonymous caller
    never learns whether the server is configured.
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        raise FunctionError(status.HTTP_401_UNAUTHORIZED, "Unauthorized")

    if not settings.is_configured:
        raise FunctionError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server misconfigured")

    user = _load_user(db, authorization[len("bearer "):].strip())
    if user is None or user.status != UserStatus.ACTIVE:
        raise FunctionError(status.HTTP_401_UNAUTHORIZED, "Unauthorized")

    if not user.has_role(*STAFF_ROLES):
        raise FunctionError(status.HTTP_403_FORBIDDEN, "Only admins can run this function")

    return user


def require_function_config():
    """Configuration check for functions that are open to anonymous callers."""
    if not settings.is_configured:
        raise FunctionError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server misconfigured")
