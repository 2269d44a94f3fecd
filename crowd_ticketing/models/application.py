"""
Partnership ("monetize") application model.
"""

import enum
import uuid
from datetime import datetime
from typing import Any, Dict, Optional, TYPE_CHECKING

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow

if TYPE_CHECKING:
    from .user import User


class ApplicationType(enum.Enum):
    INFLUENCER = "influencer"
    VENUE = "venue"


class ApplicationStatus(enum.Enum):
    """Review states. Any state may move to any other; applications are never deleted."""
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_INFO = "needs_info"


OPEN_STATUSES = (
    ApplicationStatus.PENDING,
    ApplicationStatus.UNDER_REVIEW,
    ApplicationStatus.NEEDS_INFO,
)


class PartnershipApplication(Base):
    """An influencer or venue request to partner with the platform."""

    __tablename__ = "partnership_applications"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    application_type: Mapped[ApplicationType] = mapped_column(
        Enum(ApplicationType), nullable=False, index=True
    )

    contact_info: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    business_info: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    influencer_details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    venue_details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    # Denormalized for admin search
    business_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    contact_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus),
        default=ApplicationStatus.PENDING,
        nullable=False,
        index=True
    )
    reviewer_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    partnership_terms: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    submission_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    review_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    approval_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    user: Mapped["User"] = relationship("User", foreign_keys=[user_id])

    @property
    def total_followers(self) -> int:
        """Sum of reported follower counts across platforms."""
        if not self.influencer_details:
            return 0
        counts = self.influencer_details.get("follower_count") or {}
        return sum(int(value or 0) for value in counts.values())

    def __repr__(self) -> str:
        return (
            f"<PartnershipApplication(id={self.id}, type={self.application_type.value}, "
            f"status={self.status.value})>"
        )
