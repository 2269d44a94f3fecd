"""
Partnership application service: submission and admin review.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..models import (
    OPEN_STATUSES,
    ApplicationStatus,
    ApplicationType,
    PartnershipApplication,
    User,
)
from ..models.base import utcnow
from ..schemas.application import (
    ApplicationCreate,
    ApplicationStats,
    ApplicationStatusUpdate,
    PartnershipTerms,
)
from ..utils.exceptions import ApplicationNotFoundError, ConflictError, ValidationError
from ..utils.logging_config import log_business_event

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "submission_date": PartnershipApplication.submission_date,
    "last_updated": PartnershipApplication.updated_at,
    "status": PartnershipApplication.status,
}


def apply_review(
    application: PartnershipApplication,
    status: ApplicationStatus,
    reviewer_id: UUID,
    notes: Optional[str] = None,
    terms: Optional[PartnershipTerms] = None,
    now: Optional[datetime] = None,
) -> PartnershipApplication:
    """
    Record an admin decision on an application.

    Any status may follow any other. Terms exist only while approved:
    approving stores the given terms (or the defaults), every other status
    clears them. Notes replace the previous notes only when given.
    """
    now = now or utcnow()

    application.status = status
    application.review_date = now
    application.reviewed_by = reviewer_id
    if notes is not None:
        application.reviewer_notes = notes

    if status == ApplicationStatus.APPROVED:
        application.partnership_terms = (terms or PartnershipTerms()).model_dump()
        application.approval_date = now
    else:
        application.partnership_terms = None

    return application


class ApplicationService:
    """Service class for partnership applications."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    async def submit(
        self, user: User, application_type: ApplicationType, data: ApplicationCreate
    ) -> PartnershipApplication:
        """
        Submit a new application as ``pending``.

        Raises:
            ValidationError: The details block for the type is missing
            ConflictError: The user already has an open application of this type
        """
        if application_type == ApplicationType.INFLUENCER and data.influencer_details is None:
            raise ValidationError(
                "Influencer applications need influencer details",
                field_errors={"influencer_details.niche": ["Please select your niche"]},
            )
        if application_type == ApplicationType.VENUE and data.venue_details is None:
            raise ValidationError(
                "Venue applications need venue details",
                field_errors={"venue_details": ["Venue type, capacity and location are required"]},
            )

        existing = await self.db.execute(
            select(func.count(PartnershipApplication.id)).where(
                PartnershipApplication.user_id == user.id,
                PartnershipApplication.application_type == application_type,
                PartnershipApplication.status.in_(OPEN_STATUSES),
            )
        )
        if existing.scalar():
            raise ConflictError(
                f"You already have an open {application_type.value} application",
                suggestions=["Wait for the review of your current application"],
            )

        payload = data.model_dump(mode="json")
        application = PartnershipApplication(
            user_id=user.id,
            application_type=application_type,
            contact_info=payload["contact_info"],
            business_info=payload["business_info"],
            influencer_details=payload["influencer_details"] if application_type == ApplicationType.INFLUENCER else None,
            venue_details=payload["venue_details"] if application_type == ApplicationType.VENUE else None,
            business_name=data.business_info.business_name,
            contact_name=data.contact_info.full_name,
            contact_email=str(data.contact_info.email).lower(),
            status=ApplicationStatus.PENDING,
            submission_date=utcnow(),
        )
        self.db.add(application)
        await self.db.commit()

        log_business_event(
            "application_submitted",
            {"application_id": str(application.id), "type": application_type.value},
            user_id=str(user.id),
        )
        return application

    async def list_for_user(self, user: User) -> List[PartnershipApplication]:
        result = await self.db.execute(
            select(PartnershipApplication)
            .where(PartnershipApplication.user_id == user.id)
            .order_by(PartnershipApplication.submission_date.desc())
        )
        return list(result.scalars().all())

    async def get(self, application_id: UUID) -> PartnershipApplication:
        application = await self.db.get(PartnershipApplication, application_id)
        if application is None:
            raise ApplicationNotFoundError(str(application_id))
        return application

    async def stats(self) -> ApplicationStats:
        by_status = dict((await self.db.execute(
            select(PartnershipApplication.status, func.count(PartnershipApplication.id))
            .group_by(PartnershipApplication.status)
        )).all())
        by_type = dict((await self.db.execute(
            select(PartnershipApplication.application_type, func.count(PartnershipApplication.id))
            .group_by(PartnershipApplication.application_type)
        )).all())
        recent = (await self.db.execute(
            select(func.count(PartnershipApplication.id))
            .where(PartnershipApplication.submission_date >= utcnow() - timedelta(days=7))
        )).scalar() or 0

        return ApplicationStats(
            total=sum(by_status.values()),
            pending=by_status.get(ApplicationStatus.PENDING, 0),
            under_review=by_status.get(ApplicationStatus.UNDER_REVIEW, 0),
            approved=by_status.get(ApplicationStatus.APPROVED, 0),
            rejected=by_status.get(ApplicationStatus.REJECTED, 0),
            needs_info=by_status.get(ApplicationStatus.NEEDS_INFO, 0),
            influencers=by_type.get(ApplicationType.INFLUENCER, 0),
            venues=by_type.get(ApplicationType.VENUE, 0),
            recent=recent,
        )

    async def list_applications(
        self,
        status: Optional[ApplicationStatus] = None,
        application_type: Optional[ApplicationType] = None,
        sort_by: str = "submission_date",
        sort_order: str = "desc",
        page: int = 1,
        size: int = 20
    ) -> Tuple[List[PartnershipApplication], int]:
        """
        Filtered, sorted and paginated applications for the admin screen.

        Args:
            sort_by: ``submission_date``, ``last_updated`` or ``status``
            sort_order: ``asc`` or ``desc``
        """
        conditions = []
        if status is not None:
            conditions.append(PartnershipApplication.status == status)
        if application_type is not None:
            conditions.append(PartnershipApplication.application_type == application_type)

        column = SORT_COLUMNS.get(sort_by, PartnershipApplication.submission_date)
        ordering = column.asc() if sort_order == "asc" else column.desc()

        total = (await self.db.execute(
            select(func.count(PartnershipApplication.id)).where(*conditions)
        )).scalar() or 0
        result = await self.db.execute(
            select(PartnershipApplication)
            .where(*conditions)
            .order_by(ordering, PartnershipApplication.id)
            .offset((page - 1) * size)
            .limit(size)
        )
        return list(result.scalars().all()), total

    async def search(self, query: str, limit: int = 50) -> List[PartnershipApplication]:
        """Case-insensitive search on business name, contact name and contact email."""
        term = f"%{query.strip()}%"
        result = await self.db.execute(
            select(PartnershipApplication)
            .where(or_(
                PartnershipApplication.business_name.ilike(term),
                PartnershipApplication.contact_name.ilike(term),
                PartnershipApplication.contact_email.ilike(term),
            ))
            .order_by(PartnershipApplication.submission_date.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def update_status(
        self, application_id: UUID, admin: User, update_data: ApplicationStatusUpdate
    ) -> PartnershipApplication:
        application = await self.get(application_id)
        previous = application.status

        apply_review(
            application,
            update_data.status,
            reviewer_id=admin.id,
            notes=update_data.notes,
            terms=update_data.partnership_terms,
        )
        await self.db.commit()

        log_business_event(
            "application_reviewed",
            {
                "application_id": str(application.id),
                "from": previous.value,
                "to": application.status.value,
            },
            user_id=str(admin.id),
        )

        if self.settings.notifications_enabled:
            try:
                from ..tasks.notification_tasks import send_application_status_task
                send_application_status_task.delay(str(application.id))
                logger.info(f"Application status notification queued for {application.id}")
            except Exception as e:
                logger.warning(f"Failed to queue application status notification: {e}")

        return application
