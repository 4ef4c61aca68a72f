from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, selectinload
from typing import List
from datetime import timedelta

from dependencies import get_db, get_current_active_user, require_configured, require_superadmin
from models.user import User, UserRole, UserStatus
from schemas.user import UserCreate, UserRoleUpdate, UserResponse, UserLogin, Token
from auth import verify_password, create_access_token, ACCESS_TOKEN_EXPIRE_MINUTES
from services.accounts import AccountExistsError, create_account, grant_role, change_role

router = APIRouter()

# Authentication endpoints
@router.post("/auth/login", response_model=Token, dependencies=[Depends(require_configured)])
async def login(user_credentials: UserLogin, db: Session = Depends(get_db)):
    """Authenticate user and return JWT token."""
    user = db.query(User).filter(User.email == user_credentials.email.strip().lower()).first()

    if not user or not verify_password(user_credentials.password, str(user.password)):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.status != UserStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"User account is not active. Status: {user.status.value}"
        )

    access_token_expires = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.email}, expires_delta=access_token_expires
    )

    return {"access_token": access_token, "token_type": "bearer"}

@router.get("/auth/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_active_user)):
    """Get current user information. Users without a staff role are pending approval."""
    return current_user

# User management endpoints
@router.get("/users", response_model=List[UserResponse])
async def get_users(
    skip: int = 0,
    limit: int = 100,
    current_user: User = Depends(require_superadmin),
    db: Session = Depends(get_db)
):
    """Get all users with their highest role (Super admin only)."""
    users = (
        db.query(User)
        .options(selectinload(User.role_assignments))
        .order_by(User.created_at.asc(), User.id.asc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return users

@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user: UserCreate,
    current_user: User = Depends(require_superadmin),
    db: Session = Depends(get_db)
):
    """Create a user with the given role (Super admin only)."""
    try:
        db_user = create_account(db, user.email, user.password, user.full_name)
    except AccountExistsError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not grant_role(db, db_user, user.role):
        raise HTTPException(status_code=500, detail="User created but role assignment failed")

    return db_user

@router.put("/users/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: int,
    role_update: UserRoleUpdate,
    current_user: User = Depends(require_superadmin),
    db: Session = Depends(get_db)
):
    """Change a user's role (Super admin only). A super admin role is never removed."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return change_role(db, user, role_update.role)

@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    current_user: User = Depends(require_superadmin),
    db: Session = Depends(get_db)
):
    """Delete user (Super admin only)."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    # Prevent deleting yourself
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")

    if user.has_role(UserRole.SUPER_ADMIN):
        raise HTTPException(status_code=400, detail="Cannot delete a super admin")

    db.delete(user)
    db.commit()
    return {"message": "User deleted successfully"}
