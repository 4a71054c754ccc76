"""Admin review of organizer accounts and events, and owner resubmission of rejected events."""
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.core.errors import InvalidState, NotFound
from eventhub.core.lifecycle import ReviewAction, apply_review, event_state, resubmit_event, review_event
from eventhub.core.logging import logger
from eventhub.core.permissions import Action, ensure_allowed
from eventhub.db import repositories as repo
from eventhub.db.models.base import utcnow
from eventhub.db.models.event import Event
from eventhub.db.models.user import ApprovalStatus, Role, UserProfile
from eventhub.events import publisher


class ApprovalService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_organizers(self, caller, approval_status: Optional[ApprovalStatus] = None) -> List[UserProfile]:
        """Organizer accounts, optionally only those in one approval status (the review queue)."""
        ensure_allowed(caller, Action.organizer_review)
        return await repo.list_users(self.session, role=Role.organizer, approval_status=approval_status)

    async def review_organizer(self, caller, organizer_id, action: ReviewAction, notes: Optional[str] = None) -> UserProfile:
        """
        Approve or reject an organizer account.

        Repeating the recorded decision is a no-op and emits nothing. A rejected
        organizer keeps a working account and acts as an attendee.

        Raises:
            Forbidden: Caller is not an admin
            NotFound: No such profile
            InvalidState: Target is not an organizer, or re-rejection with different notes
        """
        ensure_allowed(caller, Action.organizer_review)
        organizer = await repo.get_user(self.session, organizer_id)
        if organizer is None:
            raise NotFound("User", organizer_id)
        if organizer.role != Role.organizer:
            raise InvalidState(
                "Only organizer accounts go through approval",
                current_state={"role": Role(organizer.role).value},
            )

        outcome = apply_review(ApprovalStatus(organizer.approval_status), organizer.approval_notes, action, notes)
        if not outcome.changed:
            return organizer

        organizer.approval_status = outcome.approval_status
        organizer.approved_by = caller.id
        organizer.approved_at = utcnow()
        if notes is not None:
            organizer.approval_notes = notes
        await self.session.commit()
        await self.session.refresh(organizer)
        logger.info(f"Organizer {organizer.id} {outcome.approval_status.value} by {caller.id}")

        await publisher.publish_event(
            f"organizer.{outcome.approval_status.value}",
            {"user_id": str(organizer.id), "email": organizer.email, "notes": notes},
        )
        return organizer

    async def review_event(self, caller, event_id, action: ReviewAction, notes: Optional[str] = None) -> Event:
        """
        Approve or reject an event.

        A changing review always lands the event in draft; approval never publishes.
        """
        ensure_allowed(caller, Action.event_review)
        event = await self._get_event(event_id)

        state, changed = review_event(event_state(event), event.approval_notes, action, notes)
        if not changed:
            return event

        event.approval_status, event.status = state.approval_status, state.status
        event.approved_by = caller.id
        event.approved_at = utcnow()
        if notes is not None:
            event.approval_notes = notes
        await self.session.commit()
        await self.session.refresh(event)
        await repo.invalidate_event_caches()
        logger.info(f"Event {event.id} {state.approval_status.value} by {caller.id}")

        await publisher.publish_event(
            f"event.{state.approval_status.value}",
            {"event_id": str(event.id), "created_by": str(event.created_by), "notes": notes},
        )
        return event

    async def resubmit_event(self, caller, event_id) -> Event:
        """Owner sends a rejected event back to the review queue."""
        event = await self._get_event(event_id)
        ensure_allowed(caller, Action.event_resubmit, event)

        state = resubmit_event(event_state(event))
        event.approval_status, event.status = state.approval_status, state.status
        await self.session.commit()
        await self.session.refresh(event)
        await repo.invalidate_event_caches()
        logger.info(f"Event {event.id} resubmitted for review by {caller.id}")
        await publisher.publish_event("event.resubmitted", {"event_id": str(event.id)})
        return event

    async def _get_event(self, event_id) -> Event:
        event = await repo.get_event(self.session, event_id)
        if event is None:
            raise NotFound("Event", event_id)
        return event
