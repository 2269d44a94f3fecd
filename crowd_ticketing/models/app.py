"""
Marketplace app models: listings, user reviews and installations.
"""

import enum
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import (
    JSON, Boolean, CheckConstraint, DateTime, Enum, Float, ForeignKey, Integer, String, Text,
    UniqueConstraint, Uuid
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .user import User


class AppCategory(enum.Enum):
    MARKETING = "marketing"
    ANALYTICS = "analytics"
    PAYMENT = "payment"
    COMMUNICATION = "communication"
    DESIGN = "design"
    PRODUCTIVITY = "productivity"
    INTEGRATION = "integration"
    OTHER = "other"


class AppStatus(enum.Enum):
    """Moderation states of a listing; only approved apps are listed."""
    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"
    DEPRECATED = "deprecated"


class App(Base):
    """A third-party integration offered to organizers."""

    __tablename__ = "apps"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(300), unique=True, nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    short_description: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    developer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    developer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    developer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    developer_website: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    category: Mapped[AppCategory] = mapped_column(Enum(AppCategory), nullable=False, index=True)
    subcategory: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    version: Mapped[str] = mapped_column(String(32), default="1.0.0", nullable=False)

    icon: Mapped[str] = mapped_column(String(500), nullable=False)
    screenshots: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    banner_image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # {"type": "free"|"paid"|"freemium"|"subscription", "price", "currency", "billing_cycle"}
    pricing: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    technical: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    documentation: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    status: Mapped[AppStatus] = mapped_column(
        Enum(AppStatus),
        default=AppStatus.DRAFT,
        nullable=False,
        index=True
    )
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    installations: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    active_users: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    rating_average: Mapped[float] = mapped_column(Float, default=0.0, nullable=False, index=True)
    rating_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rating_distribution: Mapped[Dict[str, int]] = mapped_column(JSON, default=dict, nullable=False)

    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    developer: Mapped["User"] = relationship("User", foreign_keys=[developer_id])

    __table_args__ = (
        CheckConstraint("active_users >= 0", name="ck_apps_active_users_non_negative"),
    )

    @property
    def is_listed(self) -> bool:
        return self.status == AppStatus.APPROVED and self.is_public

    def __repr__(self) -> str:
        return f"<App(id={self.id}, name='{self.name}', status={self.status.value})>"


class AppReview(Base):
    """A user's rating of an app; one per user and app."""

    __tablename__ = "app_reviews"

    app_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("apps.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    helpful: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("app_id", "user_id", name="uq_app_reviews_app_user"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_app_reviews_rating_range"),
    )


class AppInstallation(Base):
    """A user's installation of an app."""

    __tablename__ = "app_installations"

    app_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("apps.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    uninstalled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("app_id", "user_id", name="uq_app_installations_app_user"),
    )
