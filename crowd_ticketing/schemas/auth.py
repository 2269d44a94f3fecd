"""
Authentication and account Pydantic schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..models.user import UserRole


class UserRegistration(BaseModel):
    """Schema for user registration."""
    email: EmailStr
    password: str = Field(..., min_length=6, description="Password must be at least 6 characters")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    is_organizer: bool = False
    phone: Optional[str] = Field(None, max_length=50)
    location: Optional[Dict[str, Any]] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class UserLogin(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class UserProfile(BaseModel):
    """Schema for user profile information."""
    id: UUID
    email: str
    first_name: str
    last_name: str
    role: UserRole
    phone: Optional[str] = None
    location: Optional[Dict[str, Any]] = None
    preferences: Dict[str, Any] = {}
    is_active: bool
    is_verified: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserProfileUpdate(BaseModel):
    """Schema for updating the caller's profile."""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    location: Optional[Dict[str, Any]] = None
    preferences: Optional[Dict[str, Any]] = None


class PasswordChange(BaseModel):
    """Schema for changing password."""
    current_password: str
    new_password: str = Field(..., min_length=6, description="Password must be at least 6 characters")


class TokenResponse(BaseModel):
    """Schema for token response."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserProfile


class SessionInfo(BaseModel):
    """One issued token as seen by its owner."""
    id: UUID
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime
    last_used: Optional[datetime] = None
    logout_at: Optional[datetime] = None
    is_active: bool
    is_current: bool = False

    model_config = ConfigDict(from_attributes=True)


class AuthStatusResponse(BaseModel):
    """Presence summary of the caller's account."""
    user_id: UUID
    is_online: bool
    last_activity: Optional[datetime] = None
    last_login: Optional[datetime] = None
    last_logout: Optional[datetime] = None
    active_sessions: int
    login_history: List[SessionInfo]


class RoleUpdate(BaseModel):
    """Admin change of an account role."""
    role: UserRole


class UserListResponse(BaseModel):
    users: List[UserProfile]
    total: int
    page: int
    size: int
    pages: int
