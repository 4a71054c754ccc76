"""
Approval and status state machines.

Organizer accounts and events share the review shape (pending_approval -> approved or
rejected). Events additionally carry a publication status; the two fields move
together through ``EventState`` so that a review always lands the event back in draft.
"""
import enum
from typing import Dict, FrozenSet, NamedTuple, Optional

from eventhub.core.errors import InvalidState
from eventhub.db.models.event import EventStatus
from eventhub.db.models.registration import RegistrationStatus
from eventhub.db.models.user import ApprovalStatus


class ReviewAction(str, enum.Enum):
    approve = "approve"
    reject = "reject"


REVIEW_TARGETS = {
    ReviewAction.approve: ApprovalStatus.approved,
    ReviewAction.reject: ApprovalStatus.rejected,
}


class ReviewOutcome(NamedTuple):
    approval_status: ApprovalStatus
    changed: bool


def apply_review(
    current: ApprovalStatus,
    current_notes: Optional[str],
    action: ReviewAction,
    notes: Optional[str] = None,
) -> ReviewOutcome:
    """
    Resolve an admin review against the current approval status.

    Repeating the decision already recorded is a no-op. Rejecting an already rejected
    record with different notes is a conflict and raises InvalidState.
    """
    target = REVIEW_TARGETS[ReviewAction(action)]
    if current == target:
        if target is ApprovalStatus.rejected and notes and notes != current_notes:
            raise InvalidState(
                "Already rejected with different notes",
                current_state={"approval_status": target.value, "approval_notes": current_notes},
            )
        return ReviewOutcome(target, False)
    return ReviewOutcome(target, True)


class EventState(NamedTuple):
    approval_status: ApprovalStatus
    status: EventStatus

    def as_dict(self) -> Dict[str, str]:
        return {"approval_status": self.approval_status.value, "status": self.status.value}


ORGANIZER_STATUS_TRANSITIONS: Dict[EventStatus, FrozenSet[EventStatus]] = {
    EventStatus.draft: frozenset({
        EventStatus.published, EventStatus.registration_open, EventStatus.cancelled,
    }),
    EventStatus.published: frozenset({
        EventStatus.registration_open, EventStatus.registration_closed, EventStatus.ongoing,
        EventStatus.draft, EventStatus.cancelled,
    }),
    EventStatus.registration_open: frozenset({
        EventStatus.registration_closed, EventStatus.published, EventStatus.ongoing,
        EventStatus.draft, EventStatus.cancelled,
    }),
    EventStatus.registration_closed: frozenset({
        EventStatus.registration_open, EventStatus.ongoing, EventStatus.cancelled,
    }),
    EventStatus.ongoing: frozenset({EventStatus.completed, EventStatus.cancelled}),
    EventStatus.completed: frozenset(),
    EventStatus.cancelled: frozenset(),
}


def event_state(event) -> EventState:
    return EventState(ApprovalStatus(event.approval_status), EventStatus(event.status))


def initial_event_state(privileged: bool, requested_status: Optional[EventStatus] = None) -> EventState:
    """Admin-created events start approved; everything else starts draft and pending."""
    if privileged:
        return EventState(ApprovalStatus.approved, EventStatus(requested_status or EventStatus.draft))
    return EventState(ApprovalStatus.pending_approval, EventStatus.draft)


def review_event(state: EventState, current_notes: Optional[str], action: ReviewAction,
                 notes: Optional[str] = None):
    """
    Apply an admin review to an event.

    Returns:
        (EventState, changed). A changing review forces status back to draft; approval
        never publishes the event.
    """
    outcome = apply_review(state.approval_status, current_notes, action, notes)
    if not outcome.changed:
        return state, False
    return EventState(outcome.approval_status, EventStatus.draft), True


def change_status(state: EventState, target: EventStatus, privileged: bool) -> EventState:
    """
    Move an event to ``target`` status.

    Admins may set any status. Owners follow ORGANIZER_STATUS_TRANSITIONS and may only
    leave draft once the event is approved.
    """
    target = EventStatus(target)
    if target == state.status:
        return state
    if privileged:
        return EventState(state.approval_status, target)
    if target not in ORGANIZER_STATUS_TRANSITIONS[state.status]:
        raise InvalidState(
            f"Cannot move event from {state.status.value} to {target.value}",
            current_state=state.as_dict(),
        )
    if target is not EventStatus.draft and state.approval_status is not ApprovalStatus.approved:
        raise InvalidState(
            "Event must be approved before it can leave draft",
            current_state=state.as_dict(),
        )
    return EventState(state.approval_status, target)


def resubmit_event(state: EventState) -> EventState:
    """Send a rejected event back to the review queue."""
    if state.approval_status is not ApprovalStatus.rejected:
        raise InvalidState("Only rejected events can be resubmitted", current_state=state.as_dict())
    return EventState(ApprovalStatus.pending_approval, EventStatus.draft)


# Registration status moves; the attendee may only cancel.
REGISTRATION_TRANSITIONS: Dict[RegistrationStatus, FrozenSet[RegistrationStatus]] = {
    RegistrationStatus.pending: frozenset({RegistrationStatus.confirmed, RegistrationStatus.cancelled}),
    RegistrationStatus.confirmed: frozenset({RegistrationStatus.checked_in, RegistrationStatus.cancelled}),
    RegistrationStatus.checked_in: frozenset(),
    RegistrationStatus.cancelled: frozenset(),
}


def change_registration_status(current: RegistrationStatus, target: RegistrationStatus) -> RegistrationStatus:
    current, target = RegistrationStatus(current), RegistrationStatus(target)
    if target not in REGISTRATION_TRANSITIONS[current]:
        raise InvalidState(
            f"Cannot move registration from {current.value} to {target.value}",
            current_state={"status": current.value},
        )
    return target
