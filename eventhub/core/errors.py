"""Error taxonomy shared by services and the HTTP boundary."""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(Enum):
    """Stable error codes surfaced to callers."""

    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    INVALID_STATE = "invalid_state"
    EVENT_NOT_OPEN = "event_not_open"
    TICKET_TYPE_INACTIVE = "ticket_type_inactive"
    INVALID_QUANTITY = "invalid_quantity"
    CAPACITY_CONFLICT = "capacity_conflict"
    REGISTRATION_REJECTED = "registration_rejected"
    TRANSIENT = "transient"


class DomainError(Exception):
    """Base domain error with code, HTTP status and user-safe message."""

    code: ErrorCode = ErrorCode.INVALID_INPUT
    status_code: int = 400

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = {k: v for k, v in details.items() if v is not None}

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        body = {"detail": self.message, "code": self.code.value}
        body.update(self.details)
        return body


class Unauthenticated(DomainError):
    code = ErrorCode.UNAUTHENTICATED
    status_code = 401

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class Forbidden(DomainError):
    """Authenticated caller denied by role or ownership."""

    code = ErrorCode.FORBIDDEN
    status_code = 403

    def __init__(self, reason: str, message: str = "Forbidden") -> None:
        super().__init__(message, reason=reason)
        self.reason = reason


class NotFound(DomainError):
    code = ErrorCode.NOT_FOUND
    status_code = 404

    def __init__(self, kind: str, identifier: Any = None) -> None:
        super().__init__(f"{kind} not found")
        self.kind = kind
        self.identifier = identifier


class InvalidInput(DomainError):
    code = ErrorCode.INVALID_INPUT


class InvalidState(DomainError):
    """Action attempted against a resource in the wrong lifecycle state."""

    code = ErrorCode.INVALID_STATE

    def __init__(self, message: str, current_state: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, current_state=current_state)
        self.current_state = current_state


class EventNotOpen(DomainError):
    code = ErrorCode.EVENT_NOT_OPEN

    def __init__(self, event_id: Any, message: str = "Event is not open for registration") -> None:
        super().__init__(message, event_id=str(event_id))


class TicketTypeInactive(DomainError):
    code = ErrorCode.TICKET_TYPE_INACTIVE

    def __init__(self, ticket_type_id: Any) -> None:
        super().__init__("Ticket type is not available for this event", ticket_type_id=str(ticket_type_id))
        self.ticket_type_id = ticket_type_id


class InvalidQuantity(DomainError):
    code = ErrorCode.INVALID_QUANTITY

    def __init__(self, ticket_type_id: Any = None, message: str = "Quantity must be at least 1") -> None:
        super().__init__(message, ticket_type_id=str(ticket_type_id) if ticket_type_id else None)
        self.ticket_type_id = ticket_type_id


class InsufficientCapacity(DomainError):
    """Registration would oversell a ticket type."""

    code = ErrorCode.CAPACITY_CONFLICT
    status_code = 409

    def __init__(self, ticket_type_id: Any, remaining: Optional[int] = None) -> None:
        super().__init__(
            "Not enough tickets remaining",
            ticket_type_id=str(ticket_type_id),
            remaining=remaining,
        )
        self.ticket_type_id = ticket_type_id
        self.remaining = remaining


class RegistrationRejected(DomainError):
    """A registration cart failed; carries one error per offending selection."""

    code = ErrorCode.REGISTRATION_REJECTED

    def __init__(self, errors: List[DomainError]) -> None:
        super().__init__("Registration could not be completed")
        self.errors = errors
        if any(isinstance(e, InsufficientCapacity) for e in errors):
            self.status_code = 409

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["errors"] = [e.to_dict() for e in self.errors]
        return body


class TransientError(DomainError):
    """Storage timeout or connectivity failure; safe for the caller to retry."""

    code = ErrorCode.TRANSIENT
    status_code = 503

    def __init__(self, message: str = "Service temporarily unavailable, please retry") -> None:
        super().__init__(message)
