"""
Organizer profile API endpoints.
"""

from typing import Any, Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.common import MessageResponse
from ..schemas.organizer import (
    OrganizerProfileCreate,
    OrganizerProfileResponse,
    OrganizerProfileUpdate,
    OrganizerPublicProfile,
)
from ..services.organizer_service import OrganizerService
from ..utils.dependencies import get_current_user, get_optional_user
from ..utils.exceptions import OrganizerNotFoundError


router = APIRouter(prefix="/organizer", tags=["organizers"])


def get_organizer_service(db: AsyncSession = Depends(get_db)) -> OrganizerService:
    return OrganizerService(db)


@router.post("/profile", response_model=OrganizerProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_organizer_profile(
    data: OrganizerProfileCreate,
    current_user: User = Depends(get_current_user),
    service: OrganizerService = Depends(get_organizer_service)
) -> Any:
    """Create the caller's organizer profile (409 if one exists)."""
    profile = await service.create_profile(current_user, data)
    return OrganizerProfileResponse.model_validate(profile)


@router.get(
    "/profile/{user_id}",
    response_model=Union[OrganizerProfileResponse, OrganizerPublicProfile],
)
async def get_organizer_profile(
    user_id: UUID,
    current_user: Optional[User] = Depends(get_optional_user),
    service: OrganizerService = Depends(get_organizer_service)
) -> Any:
    """
    Get an organizer profile by the owning user's id.

    Owners and admins get the full profile, everyone else the public subset.
    Deactivated profiles are only visible to owners and admins.
    """
    profile = await service.get_by_user(user_id)
    privileged = current_user is not None and (current_user.id == profile.user_id or current_user.is_admin)

    if privileged:
        return OrganizerProfileResponse.model_validate(profile)
    if not profile.is_active:
        raise OrganizerNotFoundError(str(user_id))
    return OrganizerPublicProfile.model_validate(profile)


@router.put("/profile/{profile_id}", response_model=OrganizerProfileResponse)
async def update_organizer_profile(
    profile_id: UUID,
    data: OrganizerProfileUpdate,
    current_user: User = Depends(get_current_user),
    service: OrganizerService = Depends(get_organizer_service)
) -> Any:
    profile = await service.update_profile(profile_id, current_user, data)
    return OrganizerProfileResponse.model_validate(profile)


@router.delete("/profile/{profile_id}", response_model=MessageResponse)
async def delete_organizer_profile(
    profile_id: UUID,
    current_user: User = Depends(get_current_user),
    service: OrganizerService = Depends(get_organizer_service)
) -> Any:
    await service.deactivate_profile(profile_id, current_user)
    return MessageResponse(message="Organizer profile deactivated")
