"""
Custom exceptions for the Crowd Ticketing platform.
"""

from typing import Any, Dict, Optional, List
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the platform."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"

    # Business logic errors
    INSUFFICIENT_TICKETS = "INSUFFICIENT_TICKETS"
    TICKET_LIMIT_EXCEEDED = "TICKET_LIMIT_EXCEEDED"
    TICKET_SALE_CLOSED = "TICKET_SALE_CLOSED"
    EVENT_NOT_ON_SALE = "EVENT_NOT_ON_SALE"
    EVENT_HAS_SALES = "EVENT_HAS_SALES"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    INVALID_ORDER_STATE = "INVALID_ORDER_STATE"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"

    # Throttling
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # External service errors
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"


class CrowdError(Exception):
    """Base exception class for the ticketing platform."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        retry_after: Optional[int] = None
    ):
        """Initialize the exception with comprehensive error information."""
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []
        self.retry_after = retry_after
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }

        if self.details:
            result["details"] = self.details

        if self.suggestions:
            result["suggestions"] = self.suggestions

        if self.retry_after:
            result["retry_after"] = self.retry_after

        return result


class ValidationError(CrowdError):
    """Exception raised when a request is well-formed but semantically invalid."""

    def __init__(
        self,
        message: str,
        field_errors: Optional[Dict[str, List[str]]] = None,
        details: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        details = dict(details or {})
        if field_errors:
            details["field_errors"] = field_errors
        super().__init__(
            message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details=details,
            **kwargs
        )
        self.field_errors = field_errors or {}


class NotFoundError(CrowdError):
    """Base exception for resource not found errors."""

    def __init__(self, message: str, resource_type: Optional[str] = None, resource_id: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id} if resource_type else None,
            **kwargs
        )


class EventNotFoundError(NotFoundError):
    """Exception raised when an event is not found."""

    def __init__(self, event_id: str, **kwargs):
        super().__init__(
            f"Event {event_id} not found",
            resource_type="event",
            resource_id=str(event_id),
            suggestions=["Check the event ID", "Browse published events"],
            **kwargs
        )


class TicketTypeNotFoundError(NotFoundError):
    """Exception raised when a ticket type does not exist for an event."""

    def __init__(self, ticket_type_id: str, **kwargs):
        super().__init__(
            f"Ticket type {ticket_type_id} not found",
            resource_type="ticket_type",
            resource_id=str(ticket_type_id),
            **kwargs
        )


class OrderNotFoundError(NotFoundError):
    """Exception raised when an order is not found."""

    def __init__(self, order_id: str, **kwargs):
        super().__init__(
            f"Order {order_id} not found",
            resource_type="order",
            resource_id=str(order_id),
            suggestions=["Check the order ID", "View your order history"],
            **kwargs
        )


class ApplicationNotFoundError(NotFoundError):
    """Exception raised when a partnership application is not found."""

    def __init__(self, application_id: str, **kwargs):
        super().__init__(
            f"Application {application_id} not found",
            resource_type="application",
            resource_id=str(application_id),
            **kwargs
        )


class FinancialAccountNotFoundError(NotFoundError):
    """Exception raised when a financial account is not found or not owned by the caller."""

    def __init__(self, account_id: str, **kwargs):
        super().__init__(
            f"Financial account {account_id} not found",
            resource_type="financial_account",
            resource_id=str(account_id),
            suggestions=["List your accounts to find the right ID"],
            **kwargs
        )


class TransactionNotFoundError(NotFoundError):
    """Exception raised when a transaction does not exist for an account."""

    def __init__(self, transaction_id: str, **kwargs):
        super().__init__(
            f"Transaction {transaction_id} not found",
            resource_type="financial_transaction",
            resource_id=str(transaction_id),
            **kwargs
        )


class AppNotFoundError(NotFoundError):
    """Exception raised when a marketplace app is not found or not visible."""

    def __init__(self, app_id: str, **kwargs):
        super().__init__(
            f"App {app_id} not found",
            resource_type="app",
            resource_id=str(app_id),
            suggestions=["Browse the app marketplace"],
            **kwargs
        )


class UserNotFoundError(NotFoundError):
    """Exception raised when a user is not found."""

    def __init__(self, user_id: str, **kwargs):
        super().__init__(
            f"User {user_id} not found",
            resource_type="user",
            resource_id=str(user_id),
            **kwargs
        )


class OrganizerNotFoundError(NotFoundError):
    """Exception raised when an organizer profile is not found."""

    def __init__(self, profile_id: str, **kwargs):
        super().__init__(
            f"Organizer profile {profile_id} not found",
            resource_type="organizer_profile",
            resource_id=str(profile_id),
            **kwargs
        )


class AuthenticationError(CrowdError):
    """Exception raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.UNAUTHORIZED,
            suggestions=["Check your credentials", "Login again"],
            **kwargs
        )


class AuthorizationError(CrowdError):
    """Exception raised for authorization failures."""

    def __init__(self, message: str = "Access denied", required_permission: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.FORBIDDEN,
            details={"required_permission": required_permission} if required_permission else None,
            suggestions=["Contact an administrator for access"],
            **kwargs
        )


class ConflictError(CrowdError):
    """Exception raised when a resource already exists."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code=ErrorCode.CONFLICT, **kwargs)


class BusinessLogicError(CrowdError):
    """Base exception for business logic violations."""
    pass


class InsufficientTicketsError(BusinessLogicError):
    """Exception raised when fewer tickets remain than were requested."""

    def __init__(self, ticket_type_name: str, requested: int, available: int, **kwargs):
        super().__init__(
            f"Not enough '{ticket_type_name}' tickets: requested {requested}, available {available}",
            error_code=ErrorCode.INSUFFICIENT_TICKETS,
            details={"ticket_type": ticket_type_name, "requested": requested, "available": available},
            suggestions=["Try ordering fewer tickets", "Pick another ticket type"],
            **kwargs
        )


class TicketLimitExceededError(BusinessLogicError):
    """Exception raised when a line exceeds the per-order maximum."""

    def __init__(self, ticket_type_name: str, requested: int, max_per_order: int, **kwargs):
        super().__init__(
            f"At most {max_per_order} '{ticket_type_name}' tickets can be bought per order",
            error_code=ErrorCode.TICKET_LIMIT_EXCEEDED,
            details={"ticket_type": ticket_type_name, "requested": requested, "max_per_order": max_per_order},
            **kwargs
        )


class TicketSaleClosedError(BusinessLogicError):
    """Exception raised when a ticket type is inactive or outside its sale window."""

    def __init__(self, ticket_type_name: str, **kwargs):
        super().__init__(
            f"'{ticket_type_name}' tickets are not on sale",
            error_code=ErrorCode.TICKET_SALE_CLOSED,
            details={"ticket_type": ticket_type_name},
            **kwargs
        )


class EventNotOnSaleError(BusinessLogicError):
    """Exception raised when ordering tickets for an unpublished event."""

    def __init__(self, event_id: str, status: str, **kwargs):
        super().__init__(
            f"Event {event_id} is not open for ticket sales (status: {status})",
            error_code=ErrorCode.EVENT_NOT_ON_SALE,
            details={"event_id": str(event_id), "status": status},
            **kwargs
        )


class EventHasSalesError(BusinessLogicError):
    """Exception raised when trying to delete an event that sold tickets."""

    def __init__(self, event_id: str, tickets_sold: int, **kwargs):
        super().__init__(
            f"Cannot delete event {event_id} with {tickets_sold} tickets sold",
            error_code=ErrorCode.EVENT_HAS_SALES,
            details={"event_id": str(event_id), "tickets_sold": tickets_sold},
            suggestions=["Cancel the event instead"],
            **kwargs
        )


class InvalidStatusTransitionError(BusinessLogicError):
    """Exception raised for a status change the workflow does not allow."""

    def __init__(self, resource_type: str, current: str, requested: str, **kwargs):
        super().__init__(
            f"Cannot change {resource_type} status from {current} to {requested}",
            error_code=ErrorCode.INVALID_STATUS_TRANSITION,
            details={"current_status": current, "requested_status": requested},
            **kwargs
        )


class InvalidOrderStateError(BusinessLogicError):
    """Exception raised when an order cannot undergo the requested operation."""

    def __init__(self, order_id: str, reason: str, **kwargs):
        super().__init__(
            f"Order {order_id} cannot be changed: {reason}",
            error_code=ErrorCode.INVALID_ORDER_STATE,
            details={"order_id": str(order_id)},
            **kwargs
        )


class InsufficientFundsError(BusinessLogicError):
    """Exception raised when a debit exceeds the available balance."""

    def __init__(self, account_id: str, requested: str, available: str, **kwargs):
        super().__init__(
            f"Insufficient available balance on account {account_id}",
            error_code=ErrorCode.INSUFFICIENT_FUNDS,
            details={"account_id": str(account_id), "requested": requested, "available": available},
            **kwargs
        )


class RateLimitError(CrowdError):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, limit: int, window: int, retry_after: int, **kwargs):
        super().__init__(
            f"Rate limit exceeded: {limit} requests per {window} seconds",
            error_code=ErrorCode.RATE_LIMIT_EXCEEDED,
            details={"limit": limit, "window": window},
            retry_after=retry_after,
            suggestions=[f"Wait {retry_after} seconds before retrying"],
            **kwargs
        )


class ExternalServiceError(CrowdError):
    """Exception raised for external service failures."""

    def __init__(self, service_name: str, message: str, details: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(
            f"{service_name} service error: {message}",
            error_code=ErrorCode.EXTERNAL_SERVICE_ERROR,
            details={"service_name": service_name, **(details or {})},
            suggestions=["Try again later", "Contact support if problem persists"],
            **kwargs
        )
