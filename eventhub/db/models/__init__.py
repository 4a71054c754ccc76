"""Database models package."""
from eventhub.db.models.user import UserProfile, Role, ApprovalStatus
from eventhub.db.models.organization import Organization, SubscriptionStatus, SubscriptionPlan
from eventhub.db.models.event import Event, EventStatus
from eventhub.db.models.ticket_type import TicketType
from eventhub.db.models.registration import Registration, RegistrationStatus

__all__ = [
    "UserProfile", "Role", "ApprovalStatus",
    "Organization", "SubscriptionStatus", "SubscriptionPlan",
    "Event", "EventStatus",
    "TicketType",
    "Registration", "RegistrationStatus",
]
