"""
Pydantic schemas for checkout and order-related API requests and responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..models.order import OrderStatus


class OrderItemRequest(BaseModel):
    """One ticket type and how many of it to buy."""

    ticket_type_id: UUID
    quantity: int = Field(..., ge=1, description="Number of tickets of this type")


def _unique_ticket_types(items: List[OrderItemRequest]) -> List[OrderItemRequest]:
    seen = set()
    for item in items:
        if item.ticket_type_id in seen:
            raise ValueError("Each ticket type may appear only once")
        seen.add(item.ticket_type_id)
    return items


class BuyerProfile(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)


class BillingAddress(BaseModel):
    street: str = ""
    city: str = ""
    state: Optional[str] = None
    country: str = ""
    postal_code: str = ""


class PaymentDetails(BaseModel):
    """
    Card details as entered at checkout.

    Only the last four digits of the card number are stored.
    """

    method: Literal["card", "free"] = "card"
    card_number: Optional[str] = None
    expiry: Optional[str] = None
    cvc: Optional[str] = None
    cardholder_name: Optional[str] = None


class AttendeeProfile(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    company: Optional[str] = Field(None, max_length=255)


class AttendeeInfo(BaseModel):
    ticket_type_id: UUID
    profile: AttendeeProfile


class OrderCreate(BaseModel):
    """Schema for placing an order."""

    event_id: UUID
    items: List[OrderItemRequest] = Field(..., min_length=1)
    buyer_profile: BuyerProfile
    billing_address: BillingAddress
    attendees_info: List[AttendeeInfo] = Field(default_factory=list)
    delivery_method: Literal["electronic"] = "electronic"
    payment: Optional[PaymentDetails] = None

    @field_validator("items")
    @classmethod
    def validate_items(cls, v):
        return _unique_ticket_types(v)


class QuoteRequest(BaseModel):
    event_id: UUID
    items: List[OrderItemRequest] = Field(..., min_length=1)

    @field_validator("items")
    @classmethod
    def validate_items(cls, v):
        return _unique_ticket_types(v)


class QuoteLine(BaseModel):
    ticket_type_id: UUID
    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal
    available: int
    max_selectable: int


class QuoteResponse(BaseModel):
    """Priced selection for the order summary."""

    event_id: UUID
    lines: List[QuoteLine]
    subtotal: Decimal
    fees: Decimal
    taxes: Decimal
    total: Decimal
    total_quantity: int
    currency: str


class CheckoutStepRequest(BaseModel):
    """Partially filled checkout form for one step."""

    step: int = Field(..., description="1 = tickets, 2 = buyer information, 3 = billing and payment")
    total_quantity: int = Field(0, ge=0)
    buyer_profile: Optional[Dict[str, Any]] = None
    billing_address: Optional[Dict[str, Any]] = None
    payment: Optional[Dict[str, Any]] = None


class CheckoutStepResponse(BaseModel):
    step: int
    valid: bool
    errors: Dict[str, List[str]] = Field(default_factory=dict)


class OrderItemResponse(BaseModel):
    id: UUID
    ticket_type_id: UUID
    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal

    model_config = ConfigDict(from_attributes=True)


class AttendeeResponse(BaseModel):
    id: UUID
    ticket_type_id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    """Schema for order responses."""

    id: UUID
    order_number: str
    user_id: UUID
    event_id: UUID
    status: OrderStatus
    buyer_profile: Dict[str, Any]
    billing_address: Dict[str, Any]
    delivery_method: str
    payment_method: str
    card_last4: Optional[str] = None
    subtotal: Decimal
    fees: Decimal
    taxes: Decimal
    total: Decimal
    currency: str
    total_quantity: int
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse]
    attendees: List[AttendeeResponse]

    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    total: int
    page: int
    size: int
    pages: int
