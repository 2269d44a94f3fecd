"""
Partnership application schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..models.application import ApplicationStatus, ApplicationType


class ContactInfo(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)


class BusinessInfo(BaseModel):
    business_name: Optional[str] = Field(None, max_length=255)
    website: Optional[str] = Field(None, max_length=500)
    social_media: Dict[str, Optional[str]] = Field(default_factory=dict)


class FollowerCount(BaseModel):
    instagram: int = Field(0, ge=0)
    tiktok: int = Field(0, ge=0)
    youtube: int = Field(0, ge=0)


class RateCard(BaseModel):
    post: int = Field(0, ge=0)
    story: int = Field(0, ge=0)
    reel: int = Field(0, ge=0)
    video: int = Field(0, ge=0)


class InfluencerDetails(BaseModel):
    niche: str = Field(..., min_length=1, max_length=100)
    follower_count: FollowerCount = Field(default_factory=FollowerCount)
    avg_engagement_rate: float = Field(0, ge=0, le=100)
    previous_brand_partnerships: Optional[str] = None
    content_types: List[str] = Field(default_factory=list)
    rate_card: RateCard = Field(default_factory=RateCard)


VenueKind = Literal[
    "restaurant", "bar", "nightclub", "event_space", "hotel", "outdoor", "rooftop", "warehouse", "other"
]


class VenueLocation(BaseModel):
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)


class VenuePricing(BaseModel):
    hourly_rate: int = Field(0, ge=0)
    daily_rate: int = Field(0, ge=0)


class VenueLicenses(BaseModel):
    liquor_license: bool = False
    music_license: bool = False
    event_permit: bool = False


class VenueDetails(BaseModel):
    venue_type: VenueKind
    capacity: int = Field(..., ge=1)
    location: VenueLocation
    event_types: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    pricing: VenuePricing = Field(default_factory=VenuePricing)
    licenses: VenueLicenses = Field(default_factory=VenueLicenses)


class ApplicationCreate(BaseModel):
    """
    Application form. The application type comes from the URL; the matching
    details block is required for it.
    """

    contact_info: ContactInfo
    business_info: BusinessInfo = Field(default_factory=BusinessInfo)
    influencer_details: Optional[InfluencerDetails] = None
    venue_details: Optional[VenueDetails] = None


class PartnershipTerms(BaseModel):
    commission_rate: float = Field(0, ge=0, le=100, description="Percent")
    minimum_revenue: float = Field(0, ge=0)
    contract_duration: int = Field(12, ge=1, description="Months")


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus
    notes: Optional[str] = Field(None, max_length=5000)
    partnership_terms: Optional[PartnershipTerms] = None


class ApplicationResponse(BaseModel):
    id: UUID
    user_id: UUID
    application_type: ApplicationType
    contact_info: Dict[str, Any]
    business_info: Dict[str, Any]
    influencer_details: Optional[Dict[str, Any]] = None
    venue_details: Optional[Dict[str, Any]] = None
    business_name: Optional[str] = None
    contact_name: str
    contact_email: str
    status: ApplicationStatus
    reviewer_notes: Optional[str] = None
    partnership_terms: Optional[Dict[str, Any]] = None
    submission_date: datetime
    review_date: Optional[datetime] = None
    approval_date: Optional[datetime] = None
    reviewed_by: Optional[UUID] = None
    total_followers: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ApplicationListResponse(BaseModel):
    applications: List[ApplicationResponse]
    total: int
    page: int
    size: int
    pages: int


class ApplicationStats(BaseModel):
    """Dashboard counters for the admin review screen."""

    total: int
    pending: int
    under_review: int
    approved: int
    rejected: int
    needs_info: int
    influencers: int
    venues: int
    recent: int = Field(..., description="Submitted in the last 7 days")
