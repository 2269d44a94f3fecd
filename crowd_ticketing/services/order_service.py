"""
Order service: quoting, placing and cancelling ticket orders.

Ticket counts are only ever changed through conditional UPDATE statements, so
two buyers racing for the last tickets cannot both succeed.
"""

import logging
import re
from collections import Counter
from typing import Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import CacheInvalidator
from ..config import get_settings
from ..models import Attendee, Event, EventStatus, Order, OrderItem, OrderStatus, TicketType, User
from ..models.base import utcnow
from ..schemas.order import (
    AttendeeInfo,
    OrderCreate,
    OrderItemRequest,
    QuoteLine,
    QuoteRequest,
    QuoteResponse,
)
from ..utils.exceptions import (
    AuthorizationError,
    EventNotFoundError,
    EventNotOnSaleError,
    InsufficientTicketsError,
    InvalidOrderStateError,
    OrderNotFoundError,
    TicketLimitExceededError,
    TicketSaleClosedError,
    TicketTypeNotFoundError,
    ValidationError,
)
from ..utils.logging_config import log_business_event
from .checkout import PricedLine, calculate_order_totals, checkout_step_errors

logger = logging.getLogger(__name__)


def generate_order_number() -> str:
    """``ORD-`` followed by ten upper-case hex characters."""
    return f"ORD-{uuid4().hex[:10].upper()}"


class OrderService:
    """Service for managing orders with atomic ticket accounting."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    async def _get_sellable_event(self, event_id: UUID) -> Event:
        event = await self.db.get(Event, event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        if event.status != EventStatus.PUBLISHED:
            raise EventNotOnSaleError(str(event_id), event.status.value)
        if event.has_started:
            raise EventNotOnSaleError(str(event_id), "started")
        return event

    def _price_items(self, event: Event, items: List[OrderItemRequest]) -> List[Tuple[TicketType, PricedLine]]:
        """
        Check a selection against the event's ticket types as currently loaded.

        Raises:
            TicketTypeNotFoundError: Ticket type missing or from another event
            TicketSaleClosedError: Ticket type inactive or outside its sale window
            TicketLimitExceededError: Quantity above ``max_per_order``
            InsufficientTicketsError: Quantity above what is left
        """
        ticket_types: Dict[UUID, TicketType] = {tt.id: tt for tt in event.ticket_types}
        now = utcnow()
        priced = []

        for item in items:
            ticket_type = ticket_types.get(item.ticket_type_id)
            if ticket_type is None:
                raise TicketTypeNotFoundError(str(item.ticket_type_id))
            if not ticket_type.is_on_sale(now):
                raise TicketSaleClosedError(ticket_type.name)
            if item.quantity > ticket_type.max_per_order:
                raise TicketLimitExceededError(ticket_type.name, item.quantity, ticket_type.max_per_order)
            if item.quantity > ticket_type.available:
                raise InsufficientTicketsError(ticket_type.name, item.quantity, ticket_type.available)

            priced.append((
                ticket_type,
                PricedLine(
                    ticket_type_id=ticket_type.id,
                    name=ticket_type.name,
                    unit_price=ticket_type.price,
                    quantity=item.quantity,
                ),
            ))

        total_quantity = sum(line.quantity for _, line in priced)
        if event.tickets_available is not None and total_quantity > event.tickets_available:
            raise InsufficientTicketsError(event.title, total_quantity, event.tickets_available)

        return priced

    async def quote(self, request: QuoteRequest) -> QuoteResponse:
        """Price a selection without reserving anything."""
        event = await self._get_sellable_event(request.event_id)
        priced = self._price_items(event, request.items)
        totals = calculate_order_totals(line for _, line in priced).rounded()

        return QuoteResponse(
            event_id=event.id,
            lines=[
                QuoteLine(
                    ticket_type_id=line.ticket_type_id,
                    name=line.name,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                    line_total=line.line_total,
                    available=ticket_type.available,
                    max_selectable=ticket_type.max_selectable,
                )
                for ticket_type, line in priced
            ],
            subtotal=totals.subtotal,
            fees=totals.fees,
            taxes=totals.taxes,
            total=totals.total,
            total_quantity=totals.total_quantity,
            currency=self.settings.currency,
        )

    @staticmethod
    def _check_attendees(attendees: List[AttendeeInfo], quantities: Dict[UUID, int]) -> None:
        per_type = Counter(attendee.ticket_type_id for attendee in attendees)
        field_errors: Dict[str, List[str]] = {}
        for ticket_type_id, count in per_type.items():
            if ticket_type_id not in quantities:
                field_errors.setdefault("attendees_info", []).append(
                    f"Ticket type {ticket_type_id} is not part of this order"
                )
            elif count > quantities[ticket_type_id]:
                field_errors.setdefault("attendees_info", []).append(
                    f"{count} attendees given for {quantities[ticket_type_id]} tickets of type {ticket_type_id}"
                )
        if field_errors:
            raise ValidationError("Invalid attendee information", field_errors=field_errors)

    async def _reserve(self, event: Event, priced: List[Tuple[TicketType, PricedLine]], total_quantity: int) -> None:
        """Bump sold counters; fails without side effects if any bump would oversell."""
        for ticket_type, line in priced:
            result = await self.db.execute(
                update(TicketType)
                .where(
                    TicketType.id == ticket_type.id,
                    TicketType.sold + line.quantity <= TicketType.quantity,
                )
                .values(sold=TicketType.sold + line.quantity)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                # Rolling back expires every loaded instance, so read what the
                # error needs first.
                left = await self.db.scalar(
                    select(TicketType.quantity - TicketType.sold).where(TicketType.id == ticket_type.id)
                )
                error = InsufficientTicketsError(ticket_type.name, line.quantity, max(left or 0, 0))
                await self.db.rollback()
                raise error

        result = await self.db.execute(
            update(Event)
            .where(
                Event.id == event.id,
                or_(
                    Event.total_capacity.is_(None),
                    Event.tickets_sold + total_quantity <= Event.total_capacity,
                ),
            )
            .values(tickets_sold=Event.tickets_sold + total_quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            left = await self.db.scalar(
                select(Event.total_capacity - Event.tickets_sold).where(Event.id == event.id)
            )
            error = InsufficientTicketsError(event.title, total_quantity, max(left or 0, 0))
            await self.db.rollback()
            raise error

    async def create_order(self, user: User, order_data: OrderCreate) -> Order:
        """
        Place an order.

        Args:
            user: Buyer account
            order_data: Checkout payload

        Returns:
            The confirmed order with its items and attendees

        Raises:
            EventNotOnSaleError: Event not published or already started
            ValidationError: Attendee, billing or payment problems
            InsufficientTicketsError: Not enough tickets left (checked atomically)
        """
        event = await self._get_sellable_event(order_data.event_id)
        priced = self._price_items(event, order_data.items)
        quantities = {line.ticket_type_id: line.quantity for _, line in priced}
        self._check_attendees(order_data.attendees_info, quantities)

        totals = calculate_order_totals(line for _, line in priced).rounded()

        payment = order_data.payment.model_dump() if order_data.payment else {"method": "card"}
        if totals.total == 0:
            payment["method"] = "free"
        elif payment["method"] == "free":
            raise ValidationError(
                "Payment is required for this order",
                field_errors={"payment.method": ["Orders with a total above zero must be paid by card"]},
            )
        field_errors = checkout_step_errors(
            3,
            billing=order_data.billing_address.model_dump(),
            payment=payment,
        )
        if field_errors:
            raise ValidationError("Invalid billing or payment details", field_errors=field_errors)

        await self._reserve(event, priced, totals.total_quantity)

        card_digits = re.sub(r"\D", "", payment.get("card_number") or "")
        order = Order(
            order_number=generate_order_number(),
            user_id=user.id,
            event=event,
            status=OrderStatus.CONFIRMED,
            buyer_profile=order_data.buyer_profile.model_dump(mode="json"),
            billing_address=order_data.billing_address.model_dump(mode="json"),
            delivery_method=order_data.delivery_method,
            payment_method=payment["method"],
            card_last4=card_digits[-4:] if payment["method"] == "card" and card_digits else None,
            subtotal=totals.subtotal,
            fees=totals.fees,
            taxes=totals.taxes,
            total=totals.total,
            currency=self.settings.currency,
            total_quantity=totals.total_quantity,
            items=[
                OrderItem(
                    ticket_type_id=line.ticket_type_id,
                    name=line.name,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                    line_total=line.line_total,
                )
                for _, line in priced
            ],
            attendees=[
                Attendee(
                    ticket_type_id=attendee.ticket_type_id,
                    name=attendee.profile.name,
                    email=attendee.profile.email,
                    phone=attendee.profile.phone,
                    company=attendee.profile.company,
                )
                for attendee in order_data.attendees_info
            ],
        )
        self.db.add(order)
        await self.db.commit()
        await CacheInvalidator.invalidate_event_caches()

        log_business_event(
            "order_created",
            {
                "order_id": str(order.id),
                "order_number": order.order_number,
                "event_id": str(event.id),
                "quantity": order.total_quantity,
                "total": str(order.total),
            },
            user_id=str(user.id),
        )

        if self.settings.notifications_enabled:
            try:
                from ..tasks.notification_tasks import send_order_confirmation_task
                send_order_confirmation_task.delay(str(order.id))
                logger.info(f"Order confirmation notification queued for {order.id}")
            except Exception as e:
                logger.warning(f"Failed to queue order confirmation notification: {e}")

        return order

    async def get_order(self, order_id: UUID, user: Optional[User] = None) -> Order:
        """
        Get an order by ID; with ``user`` given only its owner or an admin may see it.

        Raises:
            OrderNotFoundError: If the order does not exist
            AuthorizationError: If the caller does not own the order
        """
        order = await self.db.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(str(order_id))
        if user is not None and order.user_id != user.id and not user.is_admin:
            raise AuthorizationError("Not authorized to access this order")
        return order

    async def list_orders(
        self,
        user: User,
        page: int = 1,
        size: int = 20,
        status: Optional[OrderStatus] = None
    ) -> Tuple[List[Order], int]:
        conditions = [Order.user_id == user.id]
        if status is not None:
            conditions.append(Order.status == status)

        total = (await self.db.execute(select(func.count(Order.id)).where(*conditions))).scalar() or 0
        result = await self.db.execute(
            select(Order)
            .where(*conditions)
            .order_by(Order.created_at.desc())
            .offset((page - 1) * size)
            .limit(size)
        )
        return list(result.scalars().all()), total

    async def cancel_order(self, order_id: UUID, user: User) -> Order:
        """
        Cancel an order and release its tickets.

        Raises:
            InvalidOrderStateError: Already cancelled or the event has started
        """
        order = await self.get_order(order_id, user)

        if order.status == OrderStatus.CANCELLED:
            raise InvalidOrderStateError(str(order.id), "order is already cancelled")
        if order.event.has_started:
            raise InvalidOrderStateError(str(order.id), "the event has already started")

        for item in order.items:
            await self.db.execute(
                update(TicketType)
                .where(TicketType.id == item.ticket_type_id, TicketType.sold >= item.quantity)
                .values(sold=TicketType.sold - item.quantity)
                .execution_options(synchronize_session=False)
            )
        await self.db.execute(
            update(Event)
            .where(Event.id == order.event_id, Event.tickets_sold >= order.total_quantity)
            .values(tickets_sold=Event.tickets_sold - order.total_quantity)
            .execution_options(synchronize_session=False)
        )

        order.status = OrderStatus.CANCELLED
        order.cancelled_at = utcnow()
        await self.db.commit()
        await CacheInvalidator.invalidate_event_caches()

        log_business_event(
            "order_cancelled",
            {"order_id": str(order.id), "event_id": str(order.event_id), "quantity": order.total_quantity},
            user_id=str(user.id),
        )
        return order
