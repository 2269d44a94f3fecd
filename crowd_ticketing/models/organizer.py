"""
Organizer profile model.
"""

import uuid
from typing import Any, Dict, Optional, TYPE_CHECKING

from sqlalchemy import JSON, Boolean, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .user import User


class OrganizerProfile(Base):
    """Public-facing profile of an account that hosts events."""

    __tablename__ = "organizer_profiles"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    organization_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    social_links: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    email_opt_in: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="organizer_profile")

    def __repr__(self) -> str:
        return f"<OrganizerProfile(id={self.id}, name='{self.name}')>"
