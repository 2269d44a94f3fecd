"""
Organizer profile service.
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.organizer import OrganizerProfile
from ..models.user import User, UserRole
from ..schemas.organizer import OrganizerProfileCreate, OrganizerProfileUpdate
from ..utils.exceptions import AuthorizationError, ConflictError, OrganizerNotFoundError

logger = logging.getLogger(__name__)


class OrganizerService:
    """Service class for organizer profiles."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_profile(self, user: User, data: OrganizerProfileCreate) -> OrganizerProfile:
        """
        Create the caller's organizer profile.

        Creating a profile upgrades a plain account to the organizer role.

        Raises:
            ConflictError: If the user already has a profile
        """
        existing = await self.db.execute(
            select(OrganizerProfile).where(OrganizerProfile.user_id == user.id)
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Organizer profile already exists")

        payload = data.model_dump()
        payload["contact_email"] = payload.get("contact_email") or user.email
        profile = OrganizerProfile(user_id=user.id, **payload)
        self.db.add(profile)

        if user.role == UserRole.USER:
            user.role = UserRole.ORGANIZER

        await self.db.commit()
        logger.info(f"Created organizer profile {profile.id} for user {user.id}")
        return profile

    async def get_by_user(self, user_id: UUID) -> OrganizerProfile:
        result = await self.db.execute(
            select(OrganizerProfile).where(OrganizerProfile.user_id == user_id)
        )
        profile = result.scalar_one_or_none()
        if profile is None:
            raise OrganizerNotFoundError(str(user_id))
        return profile

    async def get_profile(self, profile_id: UUID) -> OrganizerProfile:
        profile = await self.db.get(OrganizerProfile, profile_id)
        if profile is None:
            raise OrganizerNotFoundError(str(profile_id))
        return profile

    def _ensure_can_manage(self, profile: OrganizerProfile, user: User) -> None:
        if profile.user_id != user.id and not user.is_admin:
            raise AuthorizationError("Not authorized to modify this organizer profile")

    async def update_profile(self, profile_id: UUID, user: User, data: OrganizerProfileUpdate) -> OrganizerProfile:
        profile = await self.get_profile(profile_id)
        self._ensure_can_manage(profile, user)

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("name", "contact_email", "social_links", "email_opt_in"):
                continue
            setattr(profile, field, value)

        await self.db.commit()
        return profile

    async def deactivate_profile(self, profile_id: UUID, user: User) -> OrganizerProfile:
        """Soft delete: the profile stays for existing events but is hidden."""
        profile = await self.get_profile(profile_id)
        self._ensure_can_manage(profile, user)

        profile.is_active = False
        await self.db.commit()
        logger.info(f"Deactivated organizer profile {profile.id}")
        return profile
