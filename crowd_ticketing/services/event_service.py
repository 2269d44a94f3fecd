"""
Event service for managing events, their lifecycle and ticket types.
"""

import logging
import re
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import String, and_, cast, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import CacheInvalidator, CacheKeyBuilder, CacheTTL, get_cache
from ..models import Event, EventCategory, EventStatus, Order, OrganizerProfile, TicketType, User
from ..models.base import as_utc, utcnow
from ..schemas.event import (
    CategoryCount,
    EventAvailabilityResponse,
    EventCreate,
    EventFilters,
    EventListResponse,
    EventLocation,
    EventResponse,
    EventUpdate,
    TicketAvailability,
    TicketTypeCreate,
    TicketTypeUpdate,
)
from ..schemas.common import PaginationInfo
from ..utils.exceptions import (
    AuthorizationError,
    EventHasSalesError,
    EventNotFoundError,
    InvalidStatusTransitionError,
    TicketTypeNotFoundError,
    ValidationError,
)
from ..utils.logging_config import log_business_event

logger = logging.getLogger(__name__)

# Allowed lifecycle moves; anything else is rejected.
STATUS_TRANSITIONS: Dict[EventStatus, tuple] = {
    EventStatus.DRAFT: (EventStatus.PUBLISHED, EventStatus.CANCELLED),
    EventStatus.PUBLISHED: (EventStatus.CANCELLED, EventStatus.COMPLETED, EventStatus.POSTPONED),
    EventStatus.POSTPONED: (EventStatus.PUBLISHED, EventStatus.CANCELLED),
    EventStatus.CANCELLED: (),
    EventStatus.COMPLETED: (),
}


def slugify(title: str) -> str:
    """
    Turn an event title into a URL slug.

    Lower-cases, drops anything that is not a word character, whitespace or
    dash, turns whitespace into dashes and collapses repeated dashes.
    """
    slug = title.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-{2,}", "-", slug).strip("-")
    return slug or "event"


def can_transition(current: EventStatus, requested: EventStatus) -> bool:
    return requested in STATUS_TRANSITIONS.get(current, ())


class EventService:
    """Service class for event management operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.cache = get_cache()

    async def _unique_slug(self, title: str) -> str:
        base = slugify(title)
        result = await self.db.execute(
            select(Event.slug).where(or_(Event.slug == base, Event.slug.like(f"{base}-%")))
        )
        taken = set(result.scalars().all())
        if base not in taken:
            return base

        suffix = 1
        while f"{base}-{suffix}" in taken:
            suffix += 1
        return f"{base}-{suffix}"

    @staticmethod
    def _apply_location(event: Event, location: EventLocation) -> None:
        event.location = location.model_dump(mode="json")
        event.location_type = location.type
        event.city = location.address.city if location.address and location.address.city else None

    @staticmethod
    def _refresh_is_free(event: Event) -> None:
        event.is_free = all(ticket_type.price == 0 for ticket_type in event.ticket_types)

    @staticmethod
    def _ensure_can_manage(event: Event, user: User) -> None:
        if event.organizer_id != user.id and not user.is_admin:
            raise AuthorizationError("Not authorized to manage this event")

    async def create_event(self, organizer: User, event_data: EventCreate) -> Event:
        """
        Create a new event with its ticket types.

        The event starts as a draft unless ``publish`` is set.

        Args:
            organizer: Owning organizer (or admin)
            event_data: Event creation data

        Returns:
            Created event instance
        """
        profile_result = await self.db.execute(
            select(OrganizerProfile).where(OrganizerProfile.user_id == organizer.id)
        )
        profile = profile_result.scalar_one_or_none()

        event = Event(
            title=event_data.title,
            description=event_data.description,
            category=event_data.category,
            subcategory=event_data.subcategory,
            organizer_id=organizer.id,
            organizer_name=profile.name if profile else organizer.full_name,
            organizer_email=profile.contact_email if profile else organizer.email,
            start_date=event_data.start_date,
            end_date=event_data.end_date,
            timezone=event_data.timezone,
            primary_image=event_data.primary_image,
            tags=event_data.tags,
            good_to_know=event_data.good_to_know,
            total_capacity=event_data.total_capacity,
            is_public=event_data.is_public,
            slug=await self._unique_slug(event_data.title),
            status=EventStatus.DRAFT,
            ticket_types=[TicketType(**ticket_type.model_dump()) for ticket_type in event_data.ticket_types],
        )
        self._apply_location(event, event_data.location)
        self._refresh_is_free(event)

        if event_data.publish:
            event.status = EventStatus.PUBLISHED
            event.published_at = utcnow()

        self.db.add(event)
        await self.db.commit()
        await CacheInvalidator.invalidate_event_caches()

        log_business_event(
            "event_created",
            {"event_id": str(event.id), "status": event.status.value, "ticket_types": len(event.ticket_types)},
            user_id=str(organizer.id),
        )
        return event

    async def get_event(self, event_id: UUID) -> Event:
        """
        Get event by ID.

        Raises:
            EventNotFoundError: If event is not found
        """
        event = await self.db.get(Event, event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event

    async def get_event_for_viewer(self, event_id: UUID, viewer: Optional[User]) -> Event:
        """Load an event for display; drafts are only visible to their owner and admins."""
        event = await self.get_event(event_id)
        if event.status == EventStatus.DRAFT:
            if viewer is None or (viewer.id != event.organizer_id and not viewer.is_admin):
                raise EventNotFoundError(str(event_id))
        return event

    async def record_view(self, event: Event) -> Event:
        await self.db.execute(
            update(Event).where(Event.id == event.id).values(views=Event.views + 1)
        )
        await self.db.commit()
        await self.db.refresh(event, attribute_names=["views"])
        return event

    def _public_conditions(self, filters: EventFilters) -> list:
        conditions = [Event.status == EventStatus.PUBLISHED, Event.is_public.is_(True)]

        if filters.category:
            conditions.append(Event.category == filters.category)
        if filters.search:
            term = f"%{filters.search}%"
            conditions.append(or_(
                Event.title.ilike(term),
                Event.description.ilike(term),
                cast(Event.tags, String).ilike(term),
            ))
        if filters.city:
            conditions.append(Event.city.ilike(f"%{filters.city}%"))
        if filters.location_type:
            conditions.append(Event.location_type == filters.location_type)
        if filters.date_from:
            conditions.append(Event.start_date >= filters.date_from)
        if filters.date_to:
            conditions.append(Event.start_date <= filters.date_to)
        if filters.is_free is not None:
            conditions.append(Event.is_free.is_(filters.is_free))
        if filters.featured is not None:
            conditions.append(Event.is_featured.is_(filters.featured))
        return conditions

    async def list_public_events(self, filters: EventFilters, page: int = 1, size: int = 20) -> EventListResponse:
        """
        Public listing of published events, ordered by start date.

        Pages are cached per filter set and invalidated on every write.
        """
        cache_key = CacheKeyBuilder.event_list(
            CacheKeyBuilder.filters_hash(filters.model_dump(mode="json")), page, size
        )
        cached = await self.cache.get(cache_key)
        if cached:
            return EventListResponse.model_validate(cached)

        where_clause = and_(*self._public_conditions(filters))
        total = (await self.db.execute(select(func.count(Event.id)).where(where_clause))).scalar() or 0
        result = await self.db.execute(
            select(Event)
            .where(where_clause)
            .order_by(Event.start_date, Event.id)
            .offset((page - 1) * size)
            .limit(size)
        )
        response = self._page(result.scalars().all(), total, page, size)

        await self.cache.set(cache_key, response.model_dump(mode="json"), CacheTTL.EVENT_LIST)
        return response

    async def list_organizer_events(self, organizer: User, page: int = 1, size: int = 20) -> EventListResponse:
        """All of an organizer's events regardless of status, newest first."""
        total = (await self.db.execute(
            select(func.count(Event.id)).where(Event.organizer_id == organizer.id)
        )).scalar() or 0
        result = await self.db.execute(
            select(Event)
            .where(Event.organizer_id == organizer.id)
            .order_by(Event.created_at.desc())
            .offset((page - 1) * size)
            .limit(size)
        )
        return self._page(result.scalars().all(), total, page, size)

    @staticmethod
    def _page(events, total: int, page: int, size: int) -> EventListResponse:
        pagination = PaginationInfo.build(total, page, size)
        return EventListResponse(
            events=[EventResponse.model_validate(event) for event in events],
            total=pagination.total,
            page=pagination.page,
            size=pagination.size,
            pages=pagination.pages,
        )

    async def get_categories(self) -> List[CategoryCount]:
        """Every category with its number of published public events."""
        cache_key = CacheKeyBuilder.event_categories()
        cached = await self.cache.get(cache_key)
        if cached:
            return [CategoryCount.model_validate(item) for item in cached]

        result = await self.db.execute(
            select(Event.category, func.count(Event.id))
            .where(Event.status == EventStatus.PUBLISHED, Event.is_public.is_(True))
            .group_by(Event.category)
        )
        counts = {category: count for category, count in result.all()}
        categories = [
            CategoryCount(category=category, count=counts.get(category, 0))
            for category in EventCategory
        ]

        await self.cache.set(
            cache_key, [item.model_dump(mode="json") for item in categories], CacheTTL.EVENT_CATEGORIES
        )
        return categories

    async def update_event(self, event_id: UUID, user: User, event_data: EventUpdate) -> Event:
        """
        Partially update an event.

        Raises:
            AuthorizationError: Caller is neither owner nor admin, or a
                non-admin tried to change ``is_featured``
            ValidationError: Capacity below tickets sold, or dates out of order
        """
        event = await self.get_event(event_id)
        self._ensure_can_manage(event, user)

        update_data = event_data.model_dump(exclude_unset=True)

        if "is_featured" in update_data and not user.is_admin:
            raise AuthorizationError("Only admins can feature events", required_permission="admin")

        if update_data.get("total_capacity") is not None and update_data["total_capacity"] < event.tickets_sold:
            raise ValidationError(
                "Cannot reduce capacity below tickets sold",
                field_errors={"total_capacity": [f"{event.tickets_sold} tickets already sold"]},
            )

        start_date = as_utc(update_data.get("start_date") or event.start_date)
        end_date = as_utc(update_data.get("end_date") or event.end_date)
        if end_date < start_date:
            raise ValidationError(
                "End date must be on or after start date",
                field_errors={"end_date": ["must be on or after start_date"]},
            )

        if event_data.location is not None:
            self._apply_location(event, event_data.location)
        update_data.pop("location", None)

        for field, value in update_data.items():
            if value is None and field not in ("subcategory", "primary_image", "total_capacity"):
                continue
            setattr(event, field, value)

        await self.db.commit()
        await CacheInvalidator.invalidate_event_caches()
        return event

    async def change_status(self, event_id: UUID, user: User, new_status: EventStatus) -> Event:
        """
        Move an event through its lifecycle.

        Raises:
            InvalidStatusTransitionError: The move is not allowed from the current status
        """
        event = await self.get_event(event_id)
        self._ensure_can_manage(event, user)

        if not can_transition(event.status, new_status):
            raise InvalidStatusTransitionError("event", event.status.value, new_status.value)

        previous = event.status
        event.status = new_status
        if new_status == EventStatus.PUBLISHED and event.published_at is None:
            event.published_at = utcnow()

        await self.db.commit()
        await CacheInvalidator.invalidate_event_caches()

        log_business_event(
            "event_status_changed",
            {"event_id": str(event.id), "from": previous.value, "to": new_status.value},
            user_id=str(user.id),
        )
        return event

    async def delete_event(self, event_id: UUID, user: User) -> None:
        """
        Delete an event that has no sales.

        Raises:
            EventHasSalesError: If tickets were sold or orders reference it
        """
        event = await self.get_event(event_id)
        self._ensure_can_manage(event, user)

        order_count = (await self.db.execute(
            select(func.count(Order.id)).where(Order.event_id == event_id)
        )).scalar() or 0
        if event.tickets_sold > 0 or order_count > 0:
            raise EventHasSalesError(str(event_id), event.tickets_sold)

        await self.db.delete(event)
        await self.db.commit()
        await CacheInvalidator.invalidate_event_caches()
        logger.info(f"Deleted event {event_id}")

    async def add_ticket_type(self, event_id: UUID, user: User, data: TicketTypeCreate) -> TicketType:
        event = await self.get_event(event_id)
        self._ensure_can_manage(event, user)

        ticket_type = TicketType(**data.model_dump())
        event.ticket_types.append(ticket_type)
        self._refresh_is_free(event)

        await self.db.commit()
        await CacheInvalidator.invalidate_event_caches()
        return ticket_type

    async def update_ticket_type(
        self, event_id: UUID, ticket_type_id: UUID, user: User, data: TicketTypeUpdate
    ) -> TicketType:
        """
        Update a ticket type of an event.

        Raises:
            TicketTypeNotFoundError: Unknown id or it belongs to another event
            ValidationError: Quantity below sold, or sale window out of order
        """
        event = await self.get_event(event_id)
        self._ensure_can_manage(event, user)

        ticket_type = next((tt for tt in event.ticket_types if tt.id == ticket_type_id), None)
        if ticket_type is None:
            raise TicketTypeNotFoundError(str(ticket_type_id))

        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("quantity") is not None and update_data["quantity"] < ticket_type.sold:
            raise ValidationError(
                "Cannot reduce quantity below tickets sold",
                field_errors={"quantity": [f"{ticket_type.sold} tickets already sold"]},
            )

        sale_start = as_utc(update_data.get("sale_start", ticket_type.sale_start))
        sale_end = as_utc(update_data.get("sale_end", ticket_type.sale_end))
        if sale_start and sale_end and sale_end < sale_start:
            raise ValidationError(
                "Sale end must be after sale start",
                field_errors={"sale_end": ["must be after sale_start"]},
            )

        for field, value in update_data.items():
            if value is None and field not in ("description", "sale_start", "sale_end"):
                continue
            setattr(ticket_type, field, value)
        self._refresh_is_free(event)

        await self.db.commit()
        await CacheInvalidator.invalidate_event_caches()
        return ticket_type

    async def get_availability(self, event: Event) -> EventAvailabilityResponse:
        now = utcnow()
        ticket_types = [
            TicketAvailability(
                ticket_type_id=ticket_type.id,
                name=ticket_type.name,
                price=ticket_type.price,
                available=ticket_type.available,
                max_selectable=ticket_type.max_selectable,
                on_sale=ticket_type.is_on_sale(now),
            )
            for ticket_type in event.ticket_types
        ]
        on_sale = (
            event.status == EventStatus.PUBLISHED
            and not event.has_started
            and any(item.on_sale and item.available > 0 for item in ticket_types)
        )
        return EventAvailabilityResponse(
            event_id=event.id,
            status=event.status,
            on_sale=on_sale,
            tickets_available=event.tickets_available,
            ticket_types=ticket_types,
        )
