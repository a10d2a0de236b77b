"""
User Model
Database schema for travel desk users
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import EmailStr, Field
from beanie import Document, Indexed

from travel_desk.models.booking import CamelModel


class UserRole(str, Enum):
    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"
    TRAVEL_AGENT = "TRAVEL_AGENT"


class UserStatus(str, Enum):
    ACTIVE = "Active"
    SUSPENDED = "Suspended"


def new_user_id() -> str:
    return f"USR-{uuid.uuid4().hex[:8].upper()}"


class SessionContext(CamelModel):
    """
    The authenticated user acting on a request.

    Built once per API call from the bearer token and passed explicitly to
    the workflow service.
    """
    user_id: str
    name: str
    role: UserRole
    department: str = ""
    avatar: Optional[str] = None


class UserDocument(Document):
    """User document model"""

    user_id: Indexed(str, unique=True) = Field(default_factory=new_user_id)
    name: str
    email: Indexed(EmailStr, unique=True)
    password_hash: str
    role: UserRole = UserRole.EMPLOYEE
    department: str = ""
    status: UserStatus = UserStatus.ACTIVE
    avatar: Optional[str] = None

    last_active: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "users"
        indexes = [
            "role",
        ]

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def to_session(self) -> SessionContext:
        return SessionContext(
            user_id=self.user_id,
            name=self.name,
            role=self.role,
            department=self.department,
            avatar=self.avatar,
        )


class UserCreate(CamelModel):
    """Schema for creating a user"""
    name: str
    email: EmailStr
    password: str
    role: UserRole = UserRole.EMPLOYEE
    department: str = ""
    avatar: Optional[str] = None


class UserUpdate(CamelModel):
    """Schema for updating a user"""
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    role: Optional[UserRole] = None
    department: Optional[str] = None
    status: Optional[UserStatus] = None
    avatar: Optional[str] = None


class UserResponse(CamelModel):
    """Schema for user response"""
    user_id: str
    name: str
    email: EmailStr
    role: UserRole
    department: str
    status: UserStatus
    avatar: Optional[str] = None
    last_active: Optional[datetime] = None

    class Config:
        from_attributes = True
