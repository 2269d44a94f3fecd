"""
User management API endpoints (admin only, except reading your own account).
"""

from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User, UserRole
from ..schemas.auth import RoleUpdate, UserListResponse, UserProfile
from ..schemas.common import PaginationInfo
from ..services.user_service import UserService
from ..utils.dependencies import get_current_admin_user, get_current_user
from ..utils.exceptions import AuthorizationError


router = APIRouter(prefix="/users", tags=["user-management"])


@router.get("/", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin_user)
) -> Any:
    users, total = await UserService(db).list_users(page, size, role)
    pagination = PaginationInfo.build(total, page, size)
    return UserListResponse(
        users=[UserProfile.model_validate(user) for user in users],
        **pagination.model_dump()
    )


@router.get("/search/{query}", response_model=List[UserProfile])
async def search_users(
    query: str,
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_admin_user)
) -> Any:
    """Search accounts by email or name."""
    users = await UserService(db).search_users(query, limit)
    return [UserProfile.model_validate(user) for user in users]


@router.get("/{user_id}", response_model=UserProfile)
async def get_user_by_id(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> Any:
    """
    Get a user by ID.

    Users may read their own account; any other account requires admin.
    """
    if current_user.id != user_id and not current_user.is_admin:
        raise AuthorizationError("You can only view your own account", required_permission="admin")

    user = await UserService(db).get_user_or_raise(user_id)
    return UserProfile.model_validate(user)


@router.put("/{user_id}/role", response_model=UserProfile)
async def update_user_role(
    user_id: UUID,
    role_data: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user)
) -> Any:
    user = await UserService(db).set_role(user_id, role_data.role, admin)
    return UserProfile.model_validate(user)


@router.put("/{user_id}/deactivate", response_model=UserProfile)
async def deactivate_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user)
) -> Any:
    """Deactivate an account and revoke all of its sessions."""
    user = await UserService(db).set_active(user_id, False, admin)
    return UserProfile.model_validate(user)


@router.put("/{user_id}/activate", response_model=UserProfile)
async def activate_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(get_current_admin_user)
) -> Any:
    user = await UserService(db).set_active(user_id, True, admin)
    return UserProfile.model_validate(user)
