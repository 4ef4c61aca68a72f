from sqlalchemy import Column, Integer, String, Enum, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base
import enum

class UserRole(enum.Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    USER = "user"

class UserStatus(enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"

# Roles that may operate the inventory; plain users wait for approval
STAFF_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN)

class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)  # Will store hashed password
    full_name = Column(String(150), nullable=True)
    status = Column(Enum(UserStatus), nullable=False, default=UserStatus.ACTIVE)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    role_assignments = relationship(
        "UserRoleAssignment", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def roles(self):
        return [assignment.role for assignment in self.role_assignments]

    @property
    def role(self) -> UserRole:
        """Highest role held; users without an assignment count as plain users."""
        for candidate in (UserRole.SUPER_ADMIN, UserRole.ADMIN):
            if candidate in self.roles:
                return candidate
        return UserRole.USER

    def has_role(self, *roles: UserRole) -> bool:
        return any(role in self.roles for role in roles)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"


class UserRoleAssignment(Base):
    __tablename__ = 'user_roles'

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.USER)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="role_assignments")
