"""
App marketplace API endpoints.
"""

from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import AppCategory, User
from ..schemas.app import (
    AppCategoryCount,
    AppCreate,
    AppInstallationResponse,
    AppListResponse,
    AppModerationUpdate,
    AppResponse,
    AppReviewCreate,
    AppReviewListResponse,
    AppReviewResponse,
    AppUpdate,
)
from ..schemas.common import MessageResponse, PaginationInfo
from ..services.app_service import AppService
from ..utils.dependencies import (
    get_current_admin_user,
    get_current_organizer,
    get_current_user,
    get_optional_user,
)


router = APIRouter(prefix="/apps", tags=["apps"])


def get_app_service(db: AsyncSession = Depends(get_db)) -> AppService:
    return AppService(db)


@router.get("/", response_model=AppListResponse)
async def list_apps(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    category: Optional[AppCategory] = Query(None),
    search: Optional[str] = Query(None, description="Search in name, description and tags"),
    featured: Optional[bool] = Query(None),
    service: AppService = Depends(get_app_service)
) -> Any:
    """Approved public apps, best rated first."""
    apps, total = await service.list_apps(page, size, category, search, featured)
    return AppListResponse(
        apps=[AppResponse.model_validate(app) for app in apps],
        **PaginationInfo.build(total, page, size).model_dump()
    )


@router.get("/featured", response_model=List[AppResponse])
async def featured_apps(service: AppService = Depends(get_app_service)) -> Any:
    return await service.list_featured()


@router.get("/categories", response_model=List[AppCategoryCount])
async def app_categories(service: AppService = Depends(get_app_service)) -> Any:
    return await service.get_categories()


@router.get("/mine", response_model=List[AppResponse])
async def my_apps(
    current_user: User = Depends(get_current_organizer),
    service: AppService = Depends(get_app_service)
) -> Any:
    """The caller's listings in every moderation state."""
    return await service.list_mine(current_user)


@router.get("/developer/{developer_id}", response_model=List[AppResponse])
async def developer_apps(
    developer_id: UUID,
    service: AppService = Depends(get_app_service)
) -> Any:
    return await service.list_by_developer(developer_id)


@router.post("/", response_model=AppResponse, status_code=status.HTTP_201_CREATED)
async def create_app(
    data: AppCreate,
    current_user: User = Depends(get_current_organizer),
    service: AppService = Depends(get_app_service)
) -> Any:
    """
    Create a listing as a draft.

    It stays off the marketplace until submitted and approved by an admin.
    """
    return await service.create_app(current_user, data)


@router.get("/{app_id}", response_model=AppResponse)
async def get_app(
    app_id: UUID,
    current_user: Optional[User] = Depends(get_optional_user),
    service: AppService = Depends(get_app_service)
) -> Any:
    return await service.get_app(app_id, current_user)


@router.put("/{app_id}", response_model=AppResponse)
async def update_app(
    app_id: UUID,
    data: AppUpdate,
    current_user: User = Depends(get_current_user),
    service: AppService = Depends(get_app_service)
) -> Any:
    return await service.update_app(app_id, current_user, data)


@router.post("/{app_id}/submit", response_model=AppResponse)
async def submit_app(
    app_id: UUID,
    current_user: User = Depends(get_current_user),
    service: AppService = Depends(get_app_service)
) -> Any:
    """Send a draft or rejected listing to moderation."""
    return await service.submit_for_review(app_id, current_user)


@router.patch("/{app_id}/moderation", response_model=AppResponse)
async def moderate_app(
    app_id: UUID,
    data: AppModerationUpdate,
    current_user: User = Depends(get_current_admin_user),
    service: AppService = Depends(get_app_service)
) -> Any:
    return await service.moderate(app_id, current_user, data)


@router.post("/{app_id}/install", response_model=AppInstallationResponse)
async def install_app(
    app_id: UUID,
    current_user: User = Depends(get_current_user),
    service: AppService = Depends(get_app_service)
) -> Any:
    app, installation = await service.install(app_id, current_user)
    return AppInstallationResponse(
        app_id=app.id,
        app_name=app.name,
        is_active=installation.is_active,
        installed_at=installation.created_at,
    )


@router.delete("/{app_id}/install", response_model=MessageResponse)
async def uninstall_app(
    app_id: UUID,
    current_user: User = Depends(get_current_user),
    service: AppService = Depends(get_app_service)
) -> Any:
    await service.uninstall(app_id, current_user)
    return MessageResponse(message="App uninstalled")


@router.post("/{app_id}/reviews", response_model=AppReviewResponse, status_code=status.HTTP_201_CREATED)
async def review_app(
    app_id: UUID,
    data: AppReviewCreate,
    current_user: User = Depends(get_current_user),
    service: AppService = Depends(get_app_service)
) -> Any:
    """Rate an app; reviewing again replaces the caller's earlier review."""
    return await service.add_review(app_id, current_user, data)


@router.get("/{app_id}/reviews", response_model=AppReviewListResponse)
async def list_app_reviews(
    app_id: UUID,
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=50),
    service: AppService = Depends(get_app_service)
) -> Any:
    reviews, total, rating = await service.list_reviews(app_id, page, size)
    return AppReviewListResponse(
        reviews=[AppReviewResponse.model_validate(review) for review in reviews],
        rating=rating,
        **PaginationInfo.build(total, page, size).model_dump()
    )
