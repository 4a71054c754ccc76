"""Unit tests for the review, event status and registration status machines."""
import pytest

from eventhub.core.errors import InvalidState
from eventhub.core.lifecycle import (
    EventState,
    ReviewAction,
    apply_review,
    change_registration_status,
    change_status,
    initial_event_state,
    resubmit_event,
    review_event,
)
from eventhub.db.models.event import EventStatus
from eventhub.db.models.registration import RegistrationStatus
from eventhub.db.models.user import ApprovalStatus

PENDING = ApprovalStatus.pending_approval
APPROVED = ApprovalStatus.approved
REJECTED = ApprovalStatus.rejected


@pytest.mark.unit
class TestApplyReview:

    def test_pending_transitions(self):
        assert apply_review(PENDING, None, ReviewAction.approve) == (APPROVED, True)
        assert apply_review(PENDING, None, ReviewAction.reject, "no") == (REJECTED, True)

    def test_repeated_approval_is_noop(self):
        assert apply_review(APPROVED, None, ReviewAction.approve) == (APPROVED, False)

    def test_repeated_rejection_with_same_or_no_notes_is_noop(self):
        assert apply_review(REJECTED, "too vague", ReviewAction.reject, "too vague") == (REJECTED, False)
        assert apply_review(REJECTED, "too vague", ReviewAction.reject) == (REJECTED, False)

    def test_rejection_with_different_notes_conflicts(self):
        with pytest.raises(InvalidState) as exc:
            apply_review(REJECTED, "too vague", ReviewAction.reject, "missing venue")

        assert exc.value.current_state["approval_status"] == "rejected"
        assert exc.value.current_state["approval_notes"] == "too vague"

    def test_admin_can_flip_a_decision(self):
        assert apply_review(APPROVED, None, ReviewAction.reject, "late") == (REJECTED, True)
        assert apply_review(REJECTED, "late", ReviewAction.approve) == (APPROVED, True)


@pytest.mark.unit
class TestEventReview:

    def test_initial_states(self):
        assert initial_event_state(False) == EventState(PENDING, EventStatus.draft)
        assert initial_event_state(False, EventStatus.published) == EventState(PENDING, EventStatus.draft)
        assert initial_event_state(True) == EventState(APPROVED, EventStatus.draft)
        assert initial_event_state(True, EventStatus.published) == EventState(APPROVED, EventStatus.published)

    def test_approval_never_publishes(self):
        state, changed = review_event(EventState(PENDING, EventStatus.draft), None, ReviewAction.approve)

        assert changed
        assert state == EventState(APPROVED, EventStatus.draft)

    def test_changing_review_forces_draft(self):
        live = EventState(APPROVED, EventStatus.registration_open)

        state, changed = review_event(live, None, ReviewAction.reject, "policy")

        assert changed
        assert state == EventState(REJECTED, EventStatus.draft)

    def test_noop_review_keeps_status(self):
        live = EventState(APPROVED, EventStatus.registration_open)

        assert review_event(live, None, ReviewAction.approve) == (live, False)

    def test_resubmit_only_from_rejected(self):
        assert resubmit_event(EventState(REJECTED, EventStatus.draft)) == EventState(PENDING, EventStatus.draft)
        with pytest.raises(InvalidState):
            resubmit_event(EventState(PENDING, EventStatus.draft))


@pytest.mark.unit
class TestChangeStatus:

    def test_owner_cannot_publish_unapproved_event(self):
        with pytest.raises(InvalidState) as exc:
            change_status(EventState(PENDING, EventStatus.draft), EventStatus.published, privileged=False)

        assert exc.value.current_state == {"approval_status": "pending_approval", "status": "draft"}

    def test_owner_publishes_approved_event(self):
        state = change_status(EventState(APPROVED, EventStatus.draft), EventStatus.registration_open, privileged=False)

        assert state.status is EventStatus.registration_open

    def test_owner_follows_transition_table(self):
        with pytest.raises(InvalidState):
            change_status(EventState(APPROVED, EventStatus.completed), EventStatus.published, privileged=False)
        with pytest.raises(InvalidState):
            change_status(EventState(APPROVED, EventStatus.draft), EventStatus.completed, privileged=False)

    def test_owner_can_cancel_unapproved_draft_only_if_approved(self):
        with pytest.raises(InvalidState):
            change_status(EventState(PENDING, EventStatus.draft), EventStatus.cancelled, privileged=False)

    def test_admin_sets_any_status(self):
        state = change_status(EventState(PENDING, EventStatus.draft), EventStatus.completed, privileged=True)

        assert state == EventState(PENDING, EventStatus.completed)

    def test_same_status_is_noop(self):
        state = EventState(PENDING, EventStatus.draft)

        assert change_status(state, EventStatus.draft, privileged=False) is state


@pytest.mark.unit
class TestRegistrationStatus:

    def test_allowed_moves(self):
        assert change_registration_status(RegistrationStatus.pending, RegistrationStatus.confirmed) is RegistrationStatus.confirmed
        assert change_registration_status(RegistrationStatus.confirmed, RegistrationStatus.checked_in) is RegistrationStatus.checked_in
        assert change_registration_status(RegistrationStatus.pending, RegistrationStatus.cancelled) is RegistrationStatus.cancelled

    @pytest.mark.parametrize("current,target", [
        (RegistrationStatus.cancelled, RegistrationStatus.confirmed),
        (RegistrationStatus.checked_in, RegistrationStatus.cancelled),
        (RegistrationStatus.pending, RegistrationStatus.checked_in),
    ])
    def test_rejected_moves(self, current, target):
        with pytest.raises(InvalidState):
            change_registration_status(current, target)
