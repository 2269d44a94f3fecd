"""
Database models for the Crowd Ticketing platform.
"""

from .base import Base
from .user import User, UserRole, UserSession
from .organizer import OrganizerProfile
from .event import Event, EventCategory, EventStatus, LocationType, TicketType
from .order import Order, OrderItem, OrderStatus, Attendee
from .application import (
    ApplicationStatus,
    ApplicationType,
    OPEN_STATUSES,
    PartnershipApplication,
)
from .finance import (
    AccountType,
    FinancialAccount,
    FinancialTransaction,
    TransactionStatus,
    TransactionType,
    VerificationStatus,
)
from .app import App, AppCategory, AppInstallation, AppReview, AppStatus

__all__ = [
    "Base",
    "User",
    "UserRole",
    "UserSession",
    "OrganizerProfile",
    "Event",
    "EventCategory",
    "EventStatus",
    "LocationType",
    "TicketType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Attendee",
    "ApplicationStatus",
    "ApplicationType",
    "OPEN_STATUSES",
    "PartnershipApplication",
    "AccountType",
    "FinancialAccount",
    "FinancialTransaction",
    "TransactionStatus",
    "TransactionType",
    "VerificationStatus",
    "App",
    "AppCategory",
    "AppInstallation",
    "AppReview",
    "AppStatus",
]
