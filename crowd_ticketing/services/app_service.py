"""
App marketplace service: listings, moderation, installs and reviews.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import String, cast, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import App, AppCategory, AppInstallation, AppReview, AppStatus, User
from ..models.base import utcnow
from ..schemas.app import (
    AppCategoryCount,
    AppCreate,
    AppModerationUpdate,
    AppRatingSummary,
    AppReviewCreate,
    AppUpdate,
)
from ..utils.exceptions import (
    AppNotFoundError,
    AuthorizationError,
    InvalidStatusTransitionError,
    NotFoundError,
)
from ..utils.logging_config import log_business_event
from .event_service import slugify

logger = logging.getLogger(__name__)

RATING_NAMES = {5: "five", 4: "four", 3: "three", 2: "two", 1: "one"}

# Statuses a developer may submit for review from.
SUBMITTABLE = (AppStatus.DRAFT, AppStatus.REJECTED)


def summarize_ratings(ratings: Iterable[int]) -> AppRatingSummary:
    """
    Average (half-up to one decimal), count and per-star distribution.

    No ratings gives an average of 0.
    """
    ratings = list(ratings)
    distribution = {name: 0 for name in RATING_NAMES.values()}
    for rating in ratings:
        distribution[RATING_NAMES[rating]] += 1

    if not ratings:
        return AppRatingSummary(average=0.0, count=0, distribution=distribution)

    average = (Decimal(sum(ratings)) / len(ratings)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return AppRatingSummary(average=float(average), count=len(ratings), distribution=distribution)


class AppService:
    """Service class for the app marketplace."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _listed(self):
        return [App.status == AppStatus.APPROVED, App.is_public.is_(True)]

    @staticmethod
    def _ranking():
        return (App.rating_average.desc(), App.installations.desc(), App.name)

    async def _unique_slug(self, name: str) -> str:
        base = slugify(name)
        result = await self.db.execute(
            select(App.slug).where(or_(App.slug == base, App.slug.like(f"{base}-%")))
        )
        taken = set(result.scalars().all())
        if base not in taken:
            return base

        suffix = 1
        while f"{base}-{suffix}" in taken:
            suffix += 1
        return f"{base}-{suffix}"

    async def create_app(self, developer: User, data: AppCreate) -> App:
        """Create a draft listing owned by the caller."""
        payload = data.model_dump(mode="json")
        app = App(
            **payload,
            slug=await self._unique_slug(data.name),
            developer_id=developer.id,
            developer_name=developer.full_name,
            developer_email=developer.email,
            status=AppStatus.DRAFT,
            rating_distribution=summarize_ratings([]).distribution,
        )
        self.db.add(app)
        await self.db.commit()

        log_business_event(
            "app_created",
            {"app_id": str(app.id), "name": app.name, "category": app.category.value},
            user_id=str(developer.id),
        )
        return app

    async def _get(self, app_id: UUID) -> App:
        app = await self.db.get(App, app_id)
        if app is None:
            raise AppNotFoundError(str(app_id))
        return app

    @staticmethod
    def _can_manage(app: App, user: Optional[User]) -> bool:
        return user is not None and (app.developer_id == user.id or user.is_admin)

    async def get_app(self, app_id: UUID, viewer: Optional[User] = None) -> App:
        """
        Fetch a listing and count the view.

        Unlisted apps (drafts, in review, rejected, suspended) are only
        visible to their developer and admins.
        """
        app = await self._get(app_id)
        if not app.is_listed and not self._can_manage(app, viewer):
            raise AppNotFoundError(str(app_id))

        await self.db.execute(
            update(App)
            .where(App.id == app.id)
            .values(views=App.views + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(app)
        return app

    async def list_apps(
        self,
        page: int = 1,
        size: int = 20,
        category: Optional[AppCategory] = None,
        search: Optional[str] = None,
        featured: Optional[bool] = None,
    ) -> Tuple[List[App], int]:
        """Listed apps, best rated and most installed first."""
        conditions = self._listed()
        if category is not None:
            conditions.append(App.category == category)
        if featured:
            conditions.append(App.is_featured.is_(True))
        if search:
            term = f"%{search}%"
            conditions.append(or_(
                App.name.ilike(term),
                App.description.ilike(term),
                cast(App.tags, String).ilike(term),
            ))

        total = (await self.db.execute(select(func.count(App.id)).where(*conditions))).scalar() or 0
        result = await self.db.execute(
            select(App)
            .where(*conditions)
            .order_by(*self._ranking())
            .offset((page - 1) * size)
            .limit(size)
        )
        return list(result.scalars().all()), total

    async def list_featured(self) -> List[App]:
        result = await self.db.execute(
            select(App).where(*self._listed(), App.is_featured.is_(True)).order_by(*self._ranking())
        )
        return list(result.scalars().all())

    async def get_categories(self) -> List[AppCategoryCount]:
        """Categories that have listed apps, most populated first."""
        count = func.count(App.id)
        result = await self.db.execute(
            select(App.category, count)
            .where(*self._listed())
            .group_by(App.category)
            .order_by(count.desc(), App.category)
        )
        return [AppCategoryCount(category=category, count=n) for category, n in result.all()]

    async def list_by_developer(self, developer_id: UUID) -> List[App]:
        result = await self.db.execute(
            select(App).where(*self._listed(), App.developer_id == developer_id).order_by(*self._ranking())
        )
        return list(result.scalars().all())

    async def list_mine(self, developer: User) -> List[App]:
        """Every listing of the caller, whatever its status."""
        result = await self.db.execute(
            select(App).where(App.developer_id == developer.id).order_by(App.created_at.desc())
        )
        return list(result.scalars().all())

    async def update_app(self, app_id: UUID, user: User, data: AppUpdate) -> App:
        """
        Edit a listing; nested blocks (pricing, technical, documentation) are
        replaced as a whole.

        Raises:
            AuthorizationError: Caller is neither the developer nor an admin
        """
        app = await self._get(app_id)
        if not self._can_manage(app, user):
            raise AuthorizationError("Not authorized to modify this app")

        for field, value in data.model_dump(mode="json", exclude_unset=True).items():
            if value is None and field in ("name", "description", "category", "version", "icon"):
                continue
            setattr(app, field, value)

        await self.db.commit()
        return app

    async def submit_for_review(self, app_id: UUID, user: User) -> App:
        """
        Move a draft or rejected listing into review.

        Raises:
            InvalidStatusTransitionError: Listing is not a draft or rejected
        """
        app = await self._get(app_id)
        if app.developer_id != user.id:
            raise AuthorizationError("Only the developer can submit this app")
        if app.status not in SUBMITTABLE:
            raise InvalidStatusTransitionError("app", app.status.value, AppStatus.REVIEW.value)

        app.status = AppStatus.REVIEW
        await self.db.commit()
        return app

    async def moderate(self, app_id: UUID, admin: User, data: AppModerationUpdate) -> App:
        """
        Apply an admin decision.

        Approving lists the app and stamps ``published_at`` the first time;
        any other status takes it off the marketplace.
        """
        app = await self._get(app_id)
        now = utcnow()

        if data.status is not None:
            app.status = data.status
            app.reviewed_at = now
            app.reviewed_by = admin.id
            if data.status == AppStatus.APPROVED:
                app.is_public = True
                if app.published_at is None:
                    app.published_at = now
            else:
                app.is_public = False

        if data.is_featured is not None:
            app.is_featured = data.is_featured

        await self.db.commit()
        log_business_event(
            "app_moderated",
            {"app_id": str(app.id), "status": app.status.value, "is_featured": app.is_featured},
            user_id=str(admin.id),
        )
        return app

    async def _get_approved(self, app_id: UUID) -> App:
        app = await self._get(app_id)
        if app.status != AppStatus.APPROVED:
            raise AppNotFoundError(str(app_id))
        return app

    async def _installation(self, app_id: UUID, user_id: UUID) -> Optional[AppInstallation]:
        result = await self.db.execute(
            select(AppInstallation).where(
                AppInstallation.app_id == app_id,
                AppInstallation.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def install(self, app_id: UUID, user: User) -> Tuple[App, AppInstallation]:
        """
        Install an approved app for the caller.

        Installing an app that is already installed changes nothing.
        """
        app = await self._get_approved(app_id)
        installation = await self._installation(app.id, user.id)

        if installation is not None and installation.is_active:
            return app, installation

        if installation is None:
            installation = AppInstallation(app_id=app.id, user_id=user.id)
            self.db.add(installation)
        else:
            installation.is_active = True
            installation.uninstalled_at = None

        app.installations += 1
        app.active_users += 1
        await self.db.commit()

        log_business_event("app_installed", {"app_id": str(app.id)}, user_id=str(user.id))
        return app, installation

    async def uninstall(self, app_id: UUID, user: User) -> None:
        """
        Raises:
            NotFoundError: The caller has no active installation of the app
        """
        app = await self._get(app_id)
        installation = await self._installation(app.id, user.id)
        if installation is None or not installation.is_active:
            raise NotFoundError(
                f"App {app_id} is not installed",
                resource_type="app_installation",
                resource_id=str(app_id),
            )

        installation.is_active = False
        installation.uninstalled_at = utcnow()
        app.active_users = max(app.active_users - 1, 0)
        await self.db.commit()
        logger.info(f"User {user.id} uninstalled app {app.id}")

    async def _refresh_rating(self, app: App) -> None:
        result = await self.db.execute(select(AppReview.rating).where(AppReview.app_id == app.id))
        summary = summarize_ratings(result.scalars().all())
        app.rating_average = summary.average
        app.rating_count = summary.count
        app.rating_distribution = summary.distribution

    async def add_review(self, app_id: UUID, user: User, data: AppReviewCreate) -> AppReview:
        """
        Rate an approved app. A second review by the same user replaces the
        first one instead of adding another.
        """
        app = await self._get_approved(app_id)
        result = await self.db.execute(
            select(AppReview).where(AppReview.app_id == app.id, AppReview.user_id == user.id)
        )
        review = result.scalar_one_or_none()

        if review is None:
            review = AppReview(app_id=app.id, user_id=user.id, user_name=user.full_name)
            self.db.add(review)
        review.rating = data.rating
        review.title = data.title
        review.comment = data.comment

        await self.db.flush()
        await self._refresh_rating(app)
        await self.db.commit()
        return review

    async def list_reviews(
        self, app_id: UUID, page: int = 1, size: int = 10
    ) -> Tuple[List[AppReview], int, AppRatingSummary]:
        """Newest reviews first, with the app's rating summary."""
        app = await self._get(app_id)
        condition = AppReview.app_id == app.id

        total = (await self.db.execute(select(func.count(AppReview.id)).where(condition))).scalar() or 0
        result = await self.db.execute(
            select(AppReview)
            .where(condition)
            .order_by(AppReview.created_at.desc())
            .offset((page - 1) * size)
            .limit(size)
        )
        rating = AppRatingSummary(
            average=app.rating_average,
            count=app.rating_count,
            distribution=app.rating_distribution or summarize_ratings([]).distribution,
        )
        return list(result.scalars().all()), total, rating
