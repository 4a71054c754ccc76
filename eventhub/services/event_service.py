from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.schemas import EventCreate, EventUpdate, TicketTypeCreate, TicketTypeUpdate
from eventhub.db import repositories as repo
from eventhub.db.models.base import as_utc, utcnow
from eventhub.db.models.event import Event, EventStatus
from eventhub.db.models.ticket_type import TicketType
from eventhub.db.models.user import ApprovalStatus, Role
from eventhub.core.errors import InvalidInput, InvalidState, NotFound
from eventhub.core.identifiers import unique_slug
from eventhub.core.lifecycle import ReviewAction, change_status, event_state, initial_event_state
from eventhub.core.logging import logger
from eventhub.core.permissions import Action, Scope, authorize, catalog_scope, effective_role, ensure_allowed
from eventhub.services.approval_service import ApprovalService
from eventhub.events import publisher
from typing import List, Optional, Tuple

SLUG_ATTEMPTS = 5

# Columns an update may not clear
REQUIRED_FIELDS = ("name", "start_date", "end_date", "is_virtual")


def parse_filter(value: Optional[str]) -> Tuple[Optional[ApprovalStatus], Optional[EventStatus]]:
    """
    Split a catalog ``filter`` query value into an approval or a status predicate.

    ``None`` and ``"all"`` mean no filter.
    """
    if value is None or value == "all":
        return None, None
    try:
        return ApprovalStatus(value), None
    except ValueError:
        pass
    try:
        return None, EventStatus(value)
    except ValueError:
        raise InvalidInput(f"Unknown filter '{value}'")


def validate_schedule(fields: dict) -> None:
    start, end = as_utc(fields.get("start_date")), as_utc(fields.get("end_date"))
    if start and end and end < start:
        raise InvalidInput("end_date must not be before start_date")
    reg_start = as_utc(fields.get("registration_start_date"))
    reg_end = as_utc(fields.get("registration_end_date"))
    if reg_start and reg_end and reg_end < reg_start:
        raise InvalidInput("registration_end_date must not be before registration_start_date")


class EventService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_events(self, caller, filter: Optional[str] = None, search: Optional[str] = None) -> Tuple[Role, List[dict]]:
        """
        The catalog as seen by ``caller``, newest first.

        Admins see every event, organizers their own, everyone else only approved
        events that are published or open for registration. ``filter`` narrows within
        that base set and can never widen it.

        Returns:
            (effective role, events as dicts)
        """
        scope = catalog_scope(caller)
        role = effective_role(caller)
        approval, status = parse_filter(filter)
        search = search.strip() if search else None

        if scope is Scope.public:
            if approval not in (None, ApprovalStatus.approved):
                return role, []
            events = await repo.list_public_events(
                self.session,
                statuses=[status.value] if status else None,
                search=search or None,
            )
            return role, events

        events = await repo.list_events(
            self.session,
            created_by=caller.id if scope is Scope.owner else None,
            approval_status=approval,
            statuses=[status] if status else None,
            search=search or None,
        )
        return role, [repo.event_to_dict(ev) for ev in events]

    async def get_event(self, caller, event_id) -> Event:
        event = await self._load(event_id)
        ensure_allowed(caller, Action.event_read, event)
        return event

    async def create_event(self, caller, payload: EventCreate) -> Event:
        """
        Create an event owned by ``caller``.

        Admin-created events start approved with the requested status; everyone else
        starts in draft awaiting approval and the requested status is ignored.
        """
        ensure_allowed(caller, Action.event_create)
        fields = payload.model_dump(exclude={"status"})
        for key in ("start_date", "end_date", "registration_start_date", "registration_end_date"):
            fields[key] = as_utc(fields[key])
        validate_schedule(fields)

        privileged = bool(authorize(caller, Action.event_review))
        state = initial_event_state(privileged, payload.status)
        fields.update(
            slug=await self._new_slug(payload.name),
            approval_status=state.approval_status,
            status=state.status,
        )
        if privileged:
            fields.update(approved_by=caller.id, approved_at=utcnow())

        event = await repo.create_event(self.session, fields, caller.id)
        await self.session.commit()
        await self.session.refresh(event)
        await repo.invalidate_event_caches()
        logger.info(f"Event {event.id} created by {caller.id} ({state.approval_status.value}/{state.status.value})")

        await publisher.publish_event(
            "event.created",
            {"event_id": str(event.id), "created_by": str(caller.id), "approval_status": state.approval_status.value},
        )
        return event

    async def update_event(self, caller, event_id, changes: EventUpdate) -> Event:
        """
        Edit event content and optionally move its status.

        Approval fields are never editable here; status moves go through the
        transition table.
        """
        event = await self._load(event_id)
        ensure_allowed(caller, Action.event_update, event)

        data = changes.model_dump(exclude_unset=True)
        target_status = data.pop("status", None)
        for key in REQUIRED_FIELDS:
            if key in data and data[key] is None:
                raise InvalidInput(f"{key} cannot be cleared")
        for key in ("start_date", "end_date", "registration_start_date", "registration_end_date"):
            if key in data:
                data[key] = as_utc(data[key])

        merged = {
            key: data.get(key, getattr(event, key))
            for key in ("start_date", "end_date", "registration_start_date", "registration_end_date")
        }
        validate_schedule(merged)

        previous_status = EventStatus(event.status)
        if target_status is not None:
            privileged = bool(authorize(caller, Action.event_review))
            state = change_status(event_state(event), target_status, privileged)
            event.status = state.status

        for key, value in data.items():
            setattr(event, key, value)

        await self.session.commit()
        await self.session.refresh(event)
        await repo.invalidate_event_caches()
        if target_status is not None and EventStatus(event.status) is not previous_status:
            logger.info(f"Event {event.id} status {previous_status.value} -> {event.status.value} by {caller.id}")
        else:
            logger.info(f"Event {event.id} updated by {caller.id}")
        return event

    async def delete_event(self, caller, event_id) -> None:
        event = await self._load(event_id)
        ensure_allowed(caller, Action.event_delete, event)
        await repo.delete_event_cascade(self.session, event)
        await self.session.commit()
        await repo.invalidate_event_caches()
        logger.info(f"Event {event_id} deleted by {caller.id}")

    async def review_event(self, caller, event_id, action: ReviewAction, notes: Optional[str] = None) -> Event:
        return await ApprovalService(self.session).review_event(caller, event_id, action, notes)

    async def resubmit_event(self, caller, event_id) -> Event:
        return await ApprovalService(self.session).resubmit_event(caller, event_id)

    # --- ticket types ------------------------------------------------------

    async def list_ticket_types(self, caller, event_id) -> List[TicketType]:
        """Managers see every ticket type; everyone else only active ones on visible events."""
        event = await self._load(event_id)
        ensure_allowed(caller, Action.event_read, event)
        manager = bool(authorize(caller, Action.ticket_manage, event))
        return await repo.list_ticket_types(self.session, event.id, active_only=not manager)

    async def create_ticket_type(self, caller, event_id, payload: TicketTypeCreate) -> TicketType:
        event = await self._load(event_id)
        ensure_allowed(caller, Action.ticket_manage, event)
        ticket_type = await repo.create_ticket_type(self.session, event.id, **payload.model_dump())
        await self.session.commit()
        await self.session.refresh(ticket_type)
        logger.info(f"Ticket type {ticket_type.id} added to event {event.id} by {caller.id}")
        return ticket_type

    async def update_ticket_type(self, caller, event_id, ticket_type_id, payload: TicketTypeUpdate) -> TicketType:
        """
        Raises:
            InvalidState: If the new quantity_available is below what has been sold
        """
        event = await self._load(event_id)
        ensure_allowed(caller, Action.ticket_manage, event)
        ticket_type = await self._load_ticket_type(event, ticket_type_id)

        values = payload.model_dump(exclude_unset=True)
        for key in ("name", "price", "is_active"):
            if key in values and values[key] is None:
                raise InvalidInput(f"{key} cannot be cleared")
        if not values:
            return ticket_type

        if not await repo.update_ticket_type(self.session, ticket_type.id, values):
            await self.session.rollback()
            await self.session.refresh(ticket_type)
            raise InvalidState(
                "quantity_available cannot be lower than the quantity already sold",
                current_state={"quantity_sold": ticket_type.quantity_sold},
            )
        await self.session.commit()
        await self.session.refresh(ticket_type)
        logger.info(f"Ticket type {ticket_type.id} updated by {caller.id}")
        return ticket_type

    async def delete_ticket_type(self, caller, event_id, ticket_type_id) -> None:
        event = await self._load(event_id)
        ensure_allowed(caller, Action.ticket_manage, event)
        ticket_type = await self._load_ticket_type(event, ticket_type_id)
        if ticket_type.quantity_sold:
            raise InvalidState(
                "Ticket types with sales cannot be deleted; deactivate them instead",
                current_state={"quantity_sold": ticket_type.quantity_sold},
            )
        await repo.delete_ticket_type(self.session, ticket_type)
        await self.session.commit()
        logger.info(f"Ticket type {ticket_type_id} deleted by {caller.id}")

    # --- helpers -----------------------------------------------------------

    async def _load(self, event_id) -> Event:
        event = await repo.get_event(self.session, event_id)
        if event is None:
            raise NotFound("Event", event_id)
        return event

    async def _load_ticket_type(self, event: Event, ticket_type_id) -> TicketType:
        ticket_type = await repo.get_ticket_type(self.session, ticket_type_id)
        if ticket_type is None or ticket_type.event_id != event.id:
            raise NotFound("Ticket type", ticket_type_id)
        return ticket_type

    async def _new_slug(self, name: str) -> str:
        for _ in range(SLUG_ATTEMPTS):
            slug = unique_slug(name)
            if not await repo.event_slug_exists(self.session, slug):
                return slug
        raise InvalidState("Could not allocate a unique slug, please retry")
