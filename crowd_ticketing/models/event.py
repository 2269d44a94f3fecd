"""
Event and ticket type models.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import (
    JSON, Boolean, CheckConstraint, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, Uuid
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, as_utc, utcnow

if TYPE_CHECKING:
    from .user import User


class EventCategory(enum.Enum):
    """Browsing categories."""
    MUSIC = "music"
    NIGHTLIFE = "nightlife"
    ARTS = "arts"
    HOLIDAYS = "holidays"
    DATING = "dating"
    HOBBIES = "hobbies"
    BUSINESS = "business"
    FOOD = "food"
    OTHER = "other"


class EventStatus(enum.Enum):
    """Lifecycle of an event listing."""
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    POSTPONED = "postponed"


class LocationType(enum.Enum):
    PHYSICAL = "physical"
    ONLINE = "online"
    HYBRID = "hybrid"


class Event(Base):
    """An event listing with its ticket types."""

    __tablename__ = "events"

    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[EventCategory] = mapped_column(Enum(EventCategory), nullable=False, index=True)
    subcategory: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    organizer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    organizer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    organizer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), default="UTC", nullable=False)

    # {"type": "physical"|"online"|"hybrid", "venue", "address": {...}, "online_details": {...}}
    location: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    location_type: Mapped[LocationType] = mapped_column(Enum(LocationType), nullable=False, index=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)

    primary_image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    good_to_know: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    is_free: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    total_capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    tickets_sold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    status: Mapped[EventStatus] = mapped_column(
        Enum(EventStatus),
        default=EventStatus.DRAFT,
        nullable=False,
        index=True
    )
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    slug: Mapped[str] = mapped_column(String(300), unique=True, nullable=False, index=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    organizer: Mapped["User"] = relationship("User")
    ticket_types: Mapped[List["TicketType"]] = relationship(
        "TicketType",
        back_populates="event",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="TicketType.created_at"
    )

    __table_args__ = (
        CheckConstraint("tickets_sold >= 0", name="ck_events_tickets_sold_non_negative"),
        CheckConstraint(
            "total_capacity IS NULL OR tickets_sold <= total_capacity",
            name="ck_events_capacity_consistency"
        ),
        CheckConstraint("end_date >= start_date", name="ck_events_date_order"),
    )

    @property
    def tickets_available(self) -> Optional[int]:
        """Remaining event-wide capacity, or None when uncapped."""
        if self.total_capacity is None:
            return None
        return max(self.total_capacity - self.tickets_sold, 0)

    @property
    def has_started(self) -> bool:
        return as_utc(self.start_date) <= utcnow()

    @property
    def min_price(self) -> Optional[Decimal]:
        prices = [ticket_type.price for ticket_type in self.ticket_types if ticket_type.is_active]
        return min(prices) if prices else None

    @property
    def max_price(self) -> Optional[Decimal]:
        prices = [ticket_type.price for ticket_type in self.ticket_types if ticket_type.is_active]
        return max(prices) if prices else None

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title='{self.title}', status={self.status.value})>"


class TicketType(Base):
    """A purchasable tier of an event (General Admission, VIP, ...)."""

    __tablename__ = "ticket_types"

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    sold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_per_order: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    sale_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    sale_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    event: Mapped["Event"] = relationship("Event", back_populates="ticket_types")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_ticket_types_price_non_negative"),
        CheckConstraint("quantity >= 0", name="ck_ticket_types_quantity_non_negative"),
        CheckConstraint("sold >= 0", name="ck_ticket_types_sold_non_negative"),
        CheckConstraint("sold <= quantity", name="ck_ticket_types_sold_within_quantity"),
        CheckConstraint("max_per_order > 0", name="ck_ticket_types_max_per_order_positive"),
    )

    @property
    def available(self) -> int:
        return max(self.quantity - self.sold, 0)

    @property
    def max_selectable(self) -> int:
        """Most tickets of this type one order may take right now."""
        return min(self.available, self.max_per_order)

    @property
    def on_sale(self) -> bool:
        return self.is_on_sale()

    def is_on_sale(self, now: Optional[datetime] = None) -> bool:
        """Active and inside its (optional) sale window."""
        now = now or utcnow()
        if not self.is_active:
            return False
        if self.sale_start is not None and now < as_utc(self.sale_start):
            return False
        if self.sale_end is not None and now > as_utc(self.sale_end):
            return False
        return True

    def __repr__(self) -> str:
        return f"<TicketType(id={self.id}, name='{self.name}', sold={self.sold}/{self.quantity})>"
