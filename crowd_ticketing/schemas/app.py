"""
Marketplace app schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_validator, model_validator

from ..models.app import AppCategory, AppStatus
from .event import _normalize_tags


class AppPricing(BaseModel):
    type: Literal["free", "paid", "freemium", "subscription"] = "free"
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    currency: str = Field("USD", min_length=3, max_length=3)
    billing_cycle: Literal["one-time", "monthly", "yearly"] = "one-time"

    @model_validator(mode="after")
    def free_means_no_price(self):
        if self.type == "free" and self.price > 0:
            raise ValueError("Free apps cannot have a price")
        return self


class AppPermission(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    required: bool = False


class AppTechnical(BaseModel):
    api_version: Optional[str] = Field(None, max_length=32)
    webhook_url: Optional[HttpUrl] = None
    redirect_urls: List[HttpUrl] = Field(default_factory=list)
    permissions: List[AppPermission] = Field(default_factory=list)
    integration_method: Literal["api", "webhook", "iframe", "redirect"] = "api"
    supported_events: List[str] = Field(default_factory=list)


class AppDocumentation(BaseModel):
    setup_guide: Optional[str] = None
    api_docs: Optional[str] = None
    changelog: Optional[str] = None
    faq: Optional[str] = None
    support_email: Optional[EmailStr] = None
    support_url: Optional[HttpUrl] = None


class AppCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    short_description: Optional[str] = Field(None, max_length=200)
    category: AppCategory
    subcategory: Optional[str] = Field(None, max_length=100)
    version: str = Field("1.0.0", max_length=32)
    developer_website: Optional[HttpUrl] = None
    icon: HttpUrl
    screenshots: List[HttpUrl] = Field(default_factory=list)
    banner_image: Optional[HttpUrl] = None
    pricing: AppPricing = Field(default_factory=AppPricing)
    technical: AppTechnical = Field(default_factory=AppTechnical)
    documentation: AppDocumentation = Field(default_factory=AppDocumentation)
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: List[str]) -> List[str]:
        return _normalize_tags(v)


class AppUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    short_description: Optional[str] = Field(None, max_length=200)
    category: Optional[AppCategory] = None
    subcategory: Optional[str] = Field(None, max_length=100)
    version: Optional[str] = Field(None, max_length=32)
    developer_website: Optional[HttpUrl] = None
    icon: Optional[HttpUrl] = None
    screenshots: Optional[List[HttpUrl]] = None
    banner_image: Optional[HttpUrl] = None
    pricing: Optional[AppPricing] = None
    technical: Optional[AppTechnical] = None
    documentation: Optional[AppDocumentation] = None
    tags: Optional[List[str]] = None

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _normalize_tags(v) if v is not None else v


class AppModerationUpdate(BaseModel):
    """Admin decision on a listing: a new status, the featured flag, or both."""
    status: Optional[AppStatus] = None
    is_featured: Optional[bool] = None

    @model_validator(mode="after")
    def something_to_change(self):
        if self.status is None and self.is_featured is None:
            raise ValueError("Provide status or is_featured")
        return self


class AppResponse(BaseModel):
    id: UUID
    name: str
    slug: str
    description: str
    short_description: Optional[str] = None
    developer_id: UUID
    developer_name: str
    developer_website: Optional[str] = None
    category: AppCategory
    subcategory: Optional[str] = None
    version: str
    icon: str
    screenshots: List[str]
    banner_image: Optional[str] = None
    pricing: Dict[str, Any]
    technical: Dict[str, Any]
    documentation: Dict[str, Any]
    tags: List[str]
    status: AppStatus
    is_public: bool
    is_featured: bool
    installations: int
    active_users: int
    views: int
    rating_average: float
    rating_count: int
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AppListResponse(BaseModel):
    apps: List[AppResponse]
    total: int
    page: int
    size: int
    pages: int


class AppCategoryCount(BaseModel):
    category: AppCategory
    count: int


class AppInstallationResponse(BaseModel):
    app_id: UUID
    app_name: str
    is_active: bool
    installed_at: datetime


class AppReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = Field(None, max_length=255)
    comment: Optional[str] = Field(None, max_length=5000)


class AppReviewResponse(BaseModel):
    id: UUID
    user_id: UUID
    user_name: str
    rating: int
    title: Optional[str] = None
    comment: Optional[str] = None
    helpful: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AppRatingSummary(BaseModel):
    average: float
    count: int
    distribution: Dict[str, int]


class AppReviewListResponse(BaseModel):
    reviews: List[AppReviewResponse]
    total: int
    page: int
    size: int
    pages: int
    rating: AppRatingSummary
