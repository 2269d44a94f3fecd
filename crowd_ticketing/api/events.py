"""
Event management API endpoints.
"""

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import EventCategory, LocationType, User
from ..schemas.common import MessageResponse
from ..schemas.event import (
    CategoryCount,
    EventAvailabilityResponse,
    EventCreate,
    EventFilters,
    EventListResponse,
    EventResponse,
    EventStatusUpdate,
    EventUpdate,
    TicketTypeCreate,
    TicketTypeResponse,
    TicketTypeUpdate,
)
from ..services.event_service import EventService
from ..utils.dependencies import get_current_organizer, get_optional_user


router = APIRouter(prefix="/events", tags=["events"])


def get_event_service(db: AsyncSession = Depends(get_db)) -> EventService:
    """Dependency to get event service instance."""
    return EventService(db)


@router.get("/", response_model=EventListResponse)
async def list_events(
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(20, ge=1, le=100, description="Page size"),
    category: Optional[EventCategory] = Query(None),
    search: Optional[str] = Query(None, description="Search in title, description and tags"),
    city: Optional[str] = Query(None),
    location_type: Optional[LocationType] = Query(None),
    date_from: Optional[datetime] = Query(None, description="Events starting from this date (ISO format)"),
    date_to: Optional[datetime] = Query(None, description="Events starting until this date (ISO format)"),
    is_free: Optional[bool] = Query(None),
    featured: Optional[bool] = Query(None),
    event_service: EventService = Depends(get_event_service)
) -> Any:
    """
    List published public events ordered by start date.

    Supports filtering by category, free text, city, location type, start
    date range, free events and featured events.
    """
    filters = EventFilters(
        category=category,
        search=search,
        city=city,
        location_type=location_type,
        date_from=date_from,
        date_to=date_to,
        is_free=is_free,
        featured=featured,
    )
    return await event_service.list_public_events(filters, page, size)


@router.get("/categories", response_model=List[CategoryCount])
async def list_categories(event_service: EventService = Depends(get_event_service)) -> Any:
    """Categories with their number of published events."""
    return await event_service.get_categories()


@router.get("/mine", response_model=EventListResponse)
async def list_my_events(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_organizer),
    event_service: EventService = Depends(get_event_service)
) -> Any:
    return await event_service.list_organizer_events(current_user, page, size)


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    current_user: User = Depends(get_current_organizer),
    event_service: EventService = Depends(get_event_service)
) -> Any:
    """
    Create a new event with its ticket types.

    Only organizers and admins can create events. The event is saved as a
    draft unless ``publish`` is true.
    """
    event = await event_service.create_event(current_user, event_data)
    return EventResponse.model_validate(event)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: UUID,
    current_user: Optional[User] = Depends(get_optional_user),
    event_service: EventService = Depends(get_event_service)
) -> Any:
    """Event details with ticket types; counts a view."""
    event = await event_service.get_event_for_viewer(event_id, current_user)
    event = await event_service.record_view(event)
    return EventResponse.model_validate(event)


@router.get("/{event_id}/availability", response_model=EventAvailabilityResponse)
async def get_event_availability(
    event_id: UUID,
    current_user: Optional[User] = Depends(get_optional_user),
    event_service: EventService = Depends(get_event_service)
) -> Any:
    event = await event_service.get_event_for_viewer(event_id, current_user)
    return await event_service.get_availability(event)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: UUID,
    event_data: EventUpdate,
    current_user: User = Depends(get_current_organizer),
    event_service: EventService = Depends(get_event_service)
) -> Any:
    """
    Update an existing event.

    Only the owning organizer or an admin may update it; capacity cannot
    drop below tickets already sold.
    """
    event = await event_service.update_event(event_id, current_user, event_data)
    return EventResponse.model_validate(event)


@router.patch("/{event_id}/status", response_model=EventResponse)
async def update_event_status(
    event_id: UUID,
    status_data: EventStatusUpdate,
    current_user: User = Depends(get_current_organizer),
    event_service: EventService = Depends(get_event_service)
) -> Any:
    event = await event_service.change_status(event_id, current_user, status_data.status)
    return EventResponse.model_validate(event)


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(
    event_id: UUID,
    current_user: User = Depends(get_current_organizer),
    event_service: EventService = Depends(get_event_service)
) -> Any:
    """
    Delete an event.

    Events with sold tickets or orders cannot be deleted; cancel them instead.
    """
    await event_service.delete_event(event_id, current_user)
    return MessageResponse(message="Event deleted")


@router.post(
    "/{event_id}/ticket-types",
    response_model=TicketTypeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_ticket_type(
    event_id: UUID,
    data: TicketTypeCreate,
    current_user: User = Depends(get_current_organizer),
    event_service: EventService = Depends(get_event_service)
) -> Any:
    ticket_type = await event_service.add_ticket_type(event_id, current_user, data)
    return TicketTypeResponse.model_validate(ticket_type)


@router.put("/{event_id}/ticket-types/{ticket_type_id}", response_model=TicketTypeResponse)
async def update_ticket_type(
    event_id: UUID,
    ticket_type_id: UUID,
    data: TicketTypeUpdate,
    current_user: User = Depends(get_current_organizer),
    event_service: EventService = Depends(get_event_service)
) -> Any:
    ticket_type = await event_service.update_ticket_type(event_id, ticket_type_id, current_user, data)
    return TicketTypeResponse.model_validate(ticket_type)
