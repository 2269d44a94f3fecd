"""
Organizer profile schemas.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class OrganizerProfileBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    bio: Optional[str] = Field(None, max_length=5000)
    website: Optional[str] = Field(None, max_length=500)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[Dict[str, Any]] = None
    organization_name: Optional[str] = Field(None, max_length=255)
    social_links: Dict[str, str] = Field(default_factory=dict, description="e.g. facebook, twitter, instagram handles")
    email_opt_in: bool = True


class OrganizerProfileCreate(OrganizerProfileBase):
    """Profile creation; contact email defaults to the account email."""
    contact_email: Optional[EmailStr] = None

    @field_validator("contact_email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


class OrganizerProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    bio: Optional[str] = Field(None, max_length=5000)
    website: Optional[str] = Field(None, max_length=500)
    contact_email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[Dict[str, Any]] = None
    organization_name: Optional[str] = Field(None, max_length=255)
    social_links: Optional[Dict[str, str]] = None
    email_opt_in: Optional[bool] = None

    @field_validator("contact_email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


class OrganizerPublicProfile(BaseModel):
    """What anyone may see about an organizer."""
    id: UUID
    user_id: UUID
    name: str
    bio: Optional[str] = None
    website: Optional[str] = None
    organization_name: Optional[str] = None
    social_links: Dict[str, Any] = {}

    model_config = ConfigDict(from_attributes=True)


class OrganizerProfileResponse(OrganizerPublicProfile):
    """Full profile for its owner and admins."""
    contact_email: str
    phone: Optional[str] = None
    address: Optional[Dict[str, Any]] = None
    email_opt_in: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime
