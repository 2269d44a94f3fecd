"""
Partnership ("monetize") application endpoints and the admin review API.
"""

from typing import Any, List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import ApplicationStatus, ApplicationType, User
from ..schemas.application import (
    ApplicationCreate,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationStats,
    ApplicationStatusUpdate,
)
from ..schemas.common import PaginationInfo
from ..services.application_service import ApplicationService
from ..utils.dependencies import get_current_admin_user, get_current_user


router = APIRouter(prefix="/monetize", tags=["monetize"])


def get_application_service(db: AsyncSession = Depends(get_db)) -> ApplicationService:
    return ApplicationService(db)


@router.post(
    "/apply/{application_type}",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def apply(
    application_type: ApplicationType,
    data: ApplicationCreate,
    current_user: User = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service)
) -> Any:
    """
    Apply to partner as an influencer or a venue.

    A user may only have one open application of each type.
    """
    application = await service.submit(current_user, application_type, data)
    return ApplicationResponse.model_validate(application)


@router.get("/my-applications", response_model=List[ApplicationResponse])
async def my_applications(
    current_user: User = Depends(get_current_user),
    service: ApplicationService = Depends(get_application_service)
) -> Any:
    applications = await service.list_for_user(current_user)
    return [ApplicationResponse.model_validate(application) for application in applications]


@router.get("/admin/stats", response_model=ApplicationStats)
async def application_stats(
    _: User = Depends(get_current_admin_user),
    service: ApplicationService = Depends(get_application_service)
) -> Any:
    return await service.stats()


@router.get("/admin/applications", response_model=ApplicationListResponse)
async def list_applications(
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    application_type: Optional[ApplicationType] = Query(None, alias="type"),
    sort_by: Literal["submission_date", "last_updated", "status"] = Query("submission_date"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    _: User = Depends(get_current_admin_user),
    service: ApplicationService = Depends(get_application_service)
) -> Any:
    """List applications for review with status/type filters, sorting and pagination."""
    applications, total = await service.list_applications(
        status=status_filter,
        application_type=application_type,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        size=size,
    )
    pagination = PaginationInfo.build(total, page, size)
    return ApplicationListResponse(
        applications=[ApplicationResponse.model_validate(application) for application in applications],
        **pagination.model_dump()
    )


@router.get("/admin/search", response_model=List[ApplicationResponse])
async def search_applications(
    q: str = Query(..., min_length=1, description="Business name, contact name or email"),
    _: User = Depends(get_current_admin_user),
    service: ApplicationService = Depends(get_application_service)
) -> Any:
    applications = await service.search(q)
    return [ApplicationResponse.model_validate(application) for application in applications]


@router.get("/admin/application/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: UUID,
    _: User = Depends(get_current_admin_user),
    service: ApplicationService = Depends(get_application_service)
) -> Any:
    application = await service.get(application_id)
    return ApplicationResponse.model_validate(application)


@router.patch("/admin/application/{application_id}/status", response_model=ApplicationResponse)
async def update_application_status(
    application_id: UUID,
    update_data: ApplicationStatusUpdate,
    admin: User = Depends(get_current_admin_user),
    service: ApplicationService = Depends(get_application_service)
) -> Any:
    """
    Review an application.

    Approving stores partnership terms (commission 0%, minimum revenue 0 and
    12 months when omitted); any other status clears them.
    """
    application = await service.update_status(application_id, admin, update_data)
    return ApplicationResponse.model_validate(application)
