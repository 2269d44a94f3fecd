"""
Checkout arithmetic: ticket selection limits, order totals and step validation.

Everything here is pure so the same rules back the quote endpoint, order
creation and the unit tests.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Optional
from uuid import UUID

from email_validator import EmailNotValidError, validate_email

from ..config import get_settings

CENT = Decimal("0.01")
CARD_NUMBER_PATTERN = re.compile(r"^\d{12,19}$")
CARD_EXPIRY_PATTERN = re.compile(r"^(0[1-9]|1[0-2])/?(\d{2}|\d{4})$")
CVC_PATTERN = re.compile(r"^\d{3,4}$")


def available_tickets(quantity: int, sold: int) -> int:
    """Tickets left for a ticket type."""
    return max(quantity - sold, 0)


def max_selectable(quantity: int, sold: int, max_per_order: int) -> int:
    """Upper bound a buyer may select for one ticket type in one order."""
    return min(available_tickets(quantity, sold), max_per_order)


def clamp_quantity(current: int, change: int, maximum: int) -> int:
    """
    Apply a +/- change to a selected quantity.

    A change that would go above ``maximum`` is ignored, a change below zero
    stops at zero. A selection already above ``maximum`` (availability shrank
    since it was made) is pulled down to ``maximum``.

    Args:
        current: Currently selected quantity
        change: Requested delta, usually +1 or -1
        maximum: ``max_selectable`` for the ticket type

    Returns:
        The new quantity, always within ``[0, maximum]``
    """
    maximum = max(maximum, 0)
    new_quantity = max(0, current + change)
    if new_quantity <= maximum:
        return new_quantity
    return min(current, maximum)


@dataclass
class TicketSelection:
    """Quantities a buyer has picked, keyed by ticket type id."""

    quantities: Dict[UUID, int] = field(default_factory=dict)

    def change(self, ticket_type_id: UUID, change: int, maximum: int) -> int:
        new_quantity = clamp_quantity(self.quantities.get(ticket_type_id, 0), change, maximum)
        if new_quantity == 0:
            self.quantities.pop(ticket_type_id, None)
        else:
            self.quantities[ticket_type_id] = new_quantity
        return new_quantity

    @property
    def total_quantity(self) -> int:
        return sum(self.quantities.values())

    def items(self) -> List[Dict[str, Any]]:
        """Order items in the shape the order endpoint accepts."""
        return [
            {"ticket_type_id": ticket_type_id, "quantity": quantity}
            for ticket_type_id, quantity in self.quantities.items()
        ]


@dataclass(frozen=True)
class PricedLine:
    ticket_type_id: UUID
    name: str
    unit_price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class OrderTotals:
    """Order money figures. ``total`` is always ``subtotal + fees + taxes``."""

    subtotal: Decimal
    fees: Decimal
    taxes: Decimal
    total: Decimal
    total_quantity: int

    def rounded(self) -> "OrderTotals":
        """
        Cent-rounded figures for display and storage.

        Each component is rounded half-up and the total is re-derived from the
        rounded components so the stored figures still add up.
        """
        subtotal = self.subtotal.quantize(CENT, rounding=ROUND_HALF_UP)
        fees = self.fees.quantize(CENT, rounding=ROUND_HALF_UP)
        taxes = self.taxes.quantize(CENT, rounding=ROUND_HALF_UP)
        return OrderTotals(
            subtotal=subtotal,
            fees=fees,
            taxes=taxes,
            total=subtotal + fees + taxes,
            total_quantity=self.total_quantity,
        )


def calculate_order_totals(
    lines: Iterable[PricedLine],
    fee_rate: Optional[Decimal] = None,
    tax_rate: Optional[Decimal] = None,
) -> OrderTotals:
    """
    Compute exact order totals.

    Args:
        lines: Priced order lines
        fee_rate: Processing fee rate, defaults to the configured 2.9%
        tax_rate: Tax rate, defaults to the configured 8%

    Returns:
        Unrounded totals; call ``rounded()`` for cent values
    """
    settings = get_settings()
    fee_rate = settings.processing_fee_rate if fee_rate is None else Decimal(fee_rate)
    tax_rate = settings.tax_rate if tax_rate is None else Decimal(tax_rate)

    lines = list(lines)
    subtotal = sum((line.line_total for line in lines), Decimal("0"))
    fees = subtotal * fee_rate
    taxes = subtotal * tax_rate
    return OrderTotals(
        subtotal=subtotal,
        fees=fees,
        taxes=taxes,
        total=subtotal + fees + taxes,
        total_quantity=sum(line.quantity for line in lines),
    )


def is_valid_email(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def checkout_step_errors(
    step: int,
    total_quantity: int = 0,
    buyer: Optional[Mapping[str, Any]] = None,
    billing: Optional[Mapping[str, Any]] = None,
    payment: Optional[Mapping[str, Any]] = None,
) -> Dict[str, List[str]]:
    """
    Validate one checkout step.

    Step 1 is ticket selection, step 2 buyer information, step 3 billing and
    payment. Later steps do not re-check earlier ones.

    Returns:
        Field path to error messages; empty when the step is complete
    """
    errors: Dict[str, List[str]] = {}

    def add(path: str, message: str) -> None:
        errors.setdefault(path, []).append(message)

    if step == 1:
        if total_quantity < 1:
            add("items", "Please select at least one ticket")

    elif step == 2:
        buyer = buyer or {}
        if _blank(buyer.get("name")):
            add("buyer_profile.name", "Please enter your name")
        if _blank(buyer.get("email")):
            add("buyer_profile.email", "Please enter your email")
        elif not is_valid_email(buyer.get("email")):
            add("buyer_profile.email", "Please enter a valid email address")

    elif step == 3:
        billing = billing or {}
        for key in ("street", "city", "country", "postal_code"):
            if _blank(billing.get(key)):
                add(f"billing_address.{key}", "This field is required")

        payment = payment or {}
        if payment.get("method", "card") == "card":
            number = re.sub(r"[\s-]", "", payment.get("card_number") or "")
            if not CARD_NUMBER_PATTERN.match(number):
                add("payment.card_number", "Please enter a valid card number")
            if not CARD_EXPIRY_PATTERN.match((payment.get("expiry") or "").strip()):
                add("payment.expiry", "Please enter the expiry as MM/YY")
            if not CVC_PATTERN.match((payment.get("cvc") or "").strip()):
                add("payment.cvc", "Please enter the card security code")
            if _blank(payment.get("cardholder_name")):
                add("payment.cardholder_name", "Please enter the name on the card")

    else:
        add("step", "Step must be 1, 2 or 3")

    return errors
