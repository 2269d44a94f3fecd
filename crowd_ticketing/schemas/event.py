"""
Event and ticket type schemas for request/response validation.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..config import get_settings
from ..models.event import EventCategory, EventStatus, LocationType


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _normalize_tags(tags: List[str]) -> List[str]:
    seen = []
    for tag in tags:
        tag = tag.strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    coordinates: Optional[Coordinates] = None


class OnlineDetails(BaseModel):
    platform: Optional[str] = None
    url: Optional[str] = None
    instructions: Optional[str] = None


class EventLocation(BaseModel):
    """Where an event happens; physical and hybrid events need a venue."""

    type: LocationType = LocationType.PHYSICAL
    venue: Optional[str] = Field(None, max_length=255)
    address: Optional[Address] = None
    online_details: Optional[OnlineDetails] = None

    @model_validator(mode="after")
    def check_venue(self):
        if self.type in (LocationType.PHYSICAL, LocationType.HYBRID) and not (self.venue or "").strip():
            raise ValueError("venue is required for physical and hybrid events")
        return self


class TicketTypeCreate(BaseModel):
    """Schema for creating a ticket type."""

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    quantity: int = Field(..., ge=0)
    max_per_order: int = Field(default_factory=lambda: get_settings().default_max_per_order, ge=1)
    sale_start: Optional[datetime] = None
    sale_end: Optional[datetime] = None
    is_active: bool = True

    @field_validator("sale_start", "sale_end")
    @classmethod
    def make_aware(cls, v):
        return _aware(v)

    @model_validator(mode="after")
    def check_sale_window(self):
        if self.sale_start and self.sale_end and self.sale_end < self.sale_start:
            raise ValueError("sale_end must be after sale_start")
        return self


class TicketTypeUpdate(BaseModel):
    """Schema for updating a ticket type; quantity may not drop below sold."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    quantity: Optional[int] = Field(None, ge=0)
    max_per_order: Optional[int] = Field(None, ge=1)
    sale_start: Optional[datetime] = None
    sale_end: Optional[datetime] = None
    is_active: Optional[bool] = None

    @field_validator("sale_start", "sale_end")
    @classmethod
    def make_aware(cls, v):
        return _aware(v)


class TicketTypeResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    price: Decimal
    quantity: int
    sold: int
    available: int
    max_per_order: int
    max_selectable: int
    sale_start: Optional[datetime] = None
    sale_end: Optional[datetime] = None
    is_active: bool
    on_sale: bool

    model_config = ConfigDict(from_attributes=True)


class EventBase(BaseModel):
    """Base event schema with common fields."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: EventCategory
    subcategory: Optional[str] = Field(None, max_length=100)
    start_date: datetime
    end_date: datetime
    timezone: str = Field("UTC", max_length=64)
    location: EventLocation
    primary_image: Optional[str] = Field(None, max_length=500)
    tags: List[str] = Field(default_factory=list)
    good_to_know: Dict[str, Any] = Field(default_factory=dict)
    total_capacity: Optional[int] = Field(None, ge=1, description="Event-wide cap across all ticket types")
    is_public: bool = True

    @field_validator("start_date", "end_date")
    @classmethod
    def make_aware(cls, v):
        return _aware(v)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: List[str]) -> List[str]:
        return _normalize_tags(v)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class EventCreate(EventBase):
    """Schema for creating a new event together with its ticket types."""

    ticket_types: List[TicketTypeCreate] = Field(default_factory=list)
    publish: bool = Field(False, description="Publish immediately instead of saving a draft")

    @field_validator("start_date")
    @classmethod
    def start_must_be_future(cls, v):
        if _aware(v) <= datetime.now(timezone.utc):
            raise ValueError("Event start date must be in the future")
        return v


class EventUpdate(BaseModel):
    """Partial update of an event's details."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[EventCategory] = None
    subcategory: Optional[str] = Field(None, max_length=100)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    timezone: Optional[str] = Field(None, max_length=64)
    location: Optional[EventLocation] = None
    primary_image: Optional[str] = Field(None, max_length=500)
    tags: Optional[List[str]] = None
    good_to_know: Optional[Dict[str, Any]] = None
    total_capacity: Optional[int] = Field(None, ge=1)
    is_public: Optional[bool] = None
    is_featured: Optional[bool] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def make_aware(cls, v):
        return _aware(v)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return None if v is None else _normalize_tags(v)


class EventStatusUpdate(BaseModel):
    status: EventStatus


class EventResponse(BaseModel):
    """Schema for event response."""

    id: UUID
    title: str
    description: str
    category: EventCategory
    subcategory: Optional[str] = None
    organizer_id: UUID
    organizer_name: Optional[str] = None
    start_date: datetime
    end_date: datetime
    timezone: str
    location: Dict[str, Any]
    primary_image: Optional[str] = None
    tags: List[str]
    good_to_know: Dict[str, Any]
    is_free: bool
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    total_capacity: Optional[int] = None
    tickets_sold: int
    tickets_available: Optional[int] = None
    status: EventStatus
    is_public: bool
    is_featured: bool
    views: int
    slug: str
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    ticket_types: List[TicketTypeResponse]

    model_config = ConfigDict(from_attributes=True)


class EventListResponse(BaseModel):
    """Schema for paginated event list response."""

    events: List[EventResponse]
    total: int
    page: int
    size: int
    pages: int


class EventFilters(BaseModel):
    """Public listing filters."""

    category: Optional[EventCategory] = None
    search: Optional[str] = Field(None, description="Search title, description and tags")
    city: Optional[str] = None
    location_type: Optional[LocationType] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    is_free: Optional[bool] = None
    featured: Optional[bool] = None

    @field_validator("date_from", "date_to")
    @classmethod
    def make_aware(cls, v):
        return _aware(v)

    @model_validator(mode="after")
    def check_range(self):
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("date_to must be after date_from")
        return self


class CategoryCount(BaseModel):
    category: EventCategory
    count: int


class TicketAvailability(BaseModel):
    ticket_type_id: UUID
    name: str
    price: Decimal
    available: int
    max_selectable: int
    on_sale: bool


class EventAvailabilityResponse(BaseModel):
    event_id: UUID
    status: EventStatus
    on_sale: bool
    tickets_available: Optional[int] = None
    ticket_types: List[TicketAvailability]
