"""
Authorization gate.

A single capability table maps each role to the actions it may perform and the scope
in which it may perform them. ``authorize`` is a pure function of the caller and the
resource fields handed to it; services consult it before any guarded read or write.
"""
import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional

from eventhub.core.errors import Forbidden, InvalidState, Unauthenticated
from eventhub.db.models.event import EventStatus
from eventhub.db.models.user import ApprovalStatus, Role


class Action(str, enum.Enum):
    event_create = "event.create"
    event_read = "event.read"
    event_update = "event.update"
    event_delete = "event.delete"
    event_review = "event.review"
    event_resubmit = "event.resubmit"
    event_list_registrations = "event.list_registrations"
    ticket_manage = "ticket.manage"
    registration_create = "registration.create"
    registration_read = "registration.read"
    registration_cancel = "registration.cancel"
    registration_manage = "registration.manage"
    organizer_review = "organizer.review"
    user_manage = "user.manage"
    organization_create = "organization.create"
    organization_read = "organization.read"
    stats_read = "stats.read"


class Scope(str, enum.Enum):
    any = "any"
    owner = "owner"
    self = "self"
    public = "public"
    owner_or_public = "owner_or_public"
    organization = "organization"


class DenyReason(str, enum.Enum):
    unauthenticated = "unauthenticated"
    forbidden_role = "forbidden-role"
    not_owner = "not-owner"
    invalid_state = "invalid-state"


PUBLIC_EVENT_STATUSES = frozenset({EventStatus.published, EventStatus.registration_open})

_ATTENDEE: Dict[Action, Scope] = {
    Action.event_read: Scope.public,
    Action.registration_create: Scope.self,
    Action.registration_read: Scope.self,
    Action.registration_cancel: Scope.self,
    Action.organization_create: Scope.self,
}

_ORGANIZER: Dict[Action, Scope] = {
    **_ATTENDEE,
    Action.event_create: Scope.any,
    Action.event_read: Scope.owner_or_public,
    Action.event_update: Scope.owner,
    Action.event_delete: Scope.owner,
    Action.event_resubmit: Scope.owner,
    Action.event_list_registrations: Scope.owner,
    Action.ticket_manage: Scope.owner,
    Action.registration_manage: Scope.owner,
}

CAPABILITIES: Dict[Role, Dict[Action, Scope]] = {
    Role.admin: {action: Scope.any for action in Action},
    Role.organizer: _ORGANIZER,
    Role.super_admin: {
        **_ATTENDEE,
        Action.user_manage: Scope.any,
        Action.organization_create: Scope.any,
        Action.organization_read: Scope.any,
    },
    Role.management: {
        **_ATTENDEE,
        Action.user_manage: Scope.organization,
        Action.organization_read: Scope.organization,
    },
    Role.attendee: _ATTENDEE,
    Role.speaker: _ATTENDEE,
    Role.staff: _ATTENDEE,
    Role.volunteer: _ATTENDEE,
    Role.guest: _ATTENDEE,
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(False, reason)

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True)
class ResourceRef:
    """Ownership fields of a resource that does not exist yet."""

    user_id: Any = None
    created_by: Any = None
    organization_id: Any = None


def effective_role(caller) -> Role:
    """Organizers act as attendees until their account is approved."""
    role = Role(caller.role)
    if role is Role.organizer and caller.approval_status != ApprovalStatus.approved:
        return Role.attendee
    return role


def is_publicly_visible(event) -> bool:
    return (
        event.approval_status == ApprovalStatus.approved
        and event.status in PUBLIC_EVENT_STATUSES
    )


def _same(left, right) -> bool:
    return left is not None and right is not None and str(left) == str(right)


def _in_scope(scope: Scope, caller, resource) -> bool:
    if scope is Scope.any:
        return True
    if resource is None:
        return False
    if scope is Scope.owner:
        return _same(getattr(resource, "created_by", None), caller.id)
    if scope is Scope.self:
        return _same(getattr(resource, "user_id", None), caller.id)
    if scope is Scope.public:
        return is_publicly_visible(resource)
    if scope is Scope.owner_or_public:
        return _same(getattr(resource, "created_by", None), caller.id) or is_publicly_visible(resource)
    if scope is Scope.organization:
        return _same(getattr(resource, "organization_id", None), getattr(caller, "organization_id", None))
    return False


def authorize(caller, action: Action, resource=None) -> Decision:
    """
    Decide whether ``caller`` may perform ``action`` on ``resource``.

    Args:
        caller: Authenticated profile (id, role, approval_status, is_active,
            organization_id) or None
        action: The guarded action
        resource: Object exposing the ownership/state fields the action's scope needs

    Returns:
        Decision, carrying a DenyReason when not allowed
    """
    if caller is None:
        return Decision.deny(DenyReason.unauthenticated)
    if not caller.is_active:
        return Decision.deny(DenyReason.forbidden_role)

    role = effective_role(caller)
    scope = CAPABILITIES[role].get(action)
    if scope is None:
        return Decision.deny(DenyReason.forbidden_role)
    if not _in_scope(scope, caller, resource):
        return Decision.deny(DenyReason.not_owner)

    if (
        action is Action.event_delete
        and role is not Role.admin
        and resource.status != EventStatus.draft
    ):
        return Decision.deny(DenyReason.invalid_state)
    return Decision.allow()


def catalog_scope(caller) -> Scope:
    """
    Which events a caller's catalog listing starts from.

    ``any`` for roles that may update any event, ``owner`` for roles that create their
    own events, ``public`` for everyone else.
    """
    if caller is None:
        raise Unauthenticated()
    if not caller.is_active:
        raise Forbidden(DenyReason.forbidden_role.value)
    capabilities = CAPABILITIES[effective_role(caller)]
    if capabilities.get(Action.event_update) is Scope.any:
        return Scope.any
    if Action.event_create in capabilities:
        return Scope.owner
    return Scope.public


def ensure_allowed(caller, action: Action, resource=None) -> None:
    """Raise the matching domain error unless ``authorize`` allows the action."""
    decision = authorize(caller, action, resource)
    if decision:
        return
    if decision.reason is DenyReason.unauthenticated:
        raise Unauthenticated()
    if decision.reason is DenyReason.invalid_state:
        raise InvalidState(
            "Only draft events can be deleted",
            current_state={"status": getattr(resource.status, "value", resource.status)},
        )
    raise Forbidden(decision.reason.value)
