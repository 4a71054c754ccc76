"""
Ticket inventory and registration.

A registration request (a "cart") holds one selection per ticket type. Either every
selection is booked or nothing is: all capacity increments and registration rows are
written in one transaction, and every failing selection is reported.
"""
from collections import OrderedDict
from decimal import Decimal
from typing import Iterable, List

from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.core.config import settings
from eventhub.core.errors import (
    DomainError,
    EventNotOpen,
    InsufficientCapacity,
    InvalidQuantity,
    InvalidState,
    NotFound,
    RegistrationRejected,
    TicketTypeInactive,
)
from eventhub.core.identifiers import confirmation_code
from eventhub.core.lifecycle import change_registration_status
from eventhub.core.logging import logger
from eventhub.core.permissions import Action, ResourceRef, authorize, ensure_allowed, is_publicly_visible
from eventhub.db import repositories as repo
from eventhub.db.models.base import as_utc, utcnow
from eventhub.db.models.event import Event
from eventhub.db.models.registration import Registration, RegistrationStatus
from eventhub.db.models.ticket_type import MAX_TICKET_QUANTITY
from eventhub.events import publisher
from eventhub.schemas import TicketSelection


def is_open_for_registration(event: Event, now=None) -> bool:
    """Approved, published or open, and inside the registration window when one is set."""
    if not is_publicly_visible(event):
        return False
    now = now or utcnow()
    opens, closes = as_utc(event.registration_start_date), as_utc(event.registration_end_date)
    if opens and now < opens:
        return False
    if closes and now > closes:
        return False
    return True


def merge_selections(selections: Iterable[TicketSelection]) -> "OrderedDict":
    """
    Validate quantities and fold repeated ticket types into one line.

    Raises:
        InvalidQuantity: For an empty cart
        RegistrationRejected: With one InvalidQuantity per non-positive selection, or per
            ticket type whose combined quantity exceeds MAX_TICKET_QUANTITY
    """
    selections = list(selections)
    if not selections:
        raise InvalidQuantity(message="At least one ticket selection is required")

    errors: List[DomainError] = [
        InvalidQuantity(s.ticket_type_id) for s in selections if s.quantity < 1
    ]
    if errors:
        raise RegistrationRejected(errors)

    merged = OrderedDict()
    for s in selections:
        merged[s.ticket_type_id] = merged.get(s.ticket_type_id, 0) + s.quantity

    too_many = [
        InvalidQuantity(ticket_type_id, message=f"Quantity must not exceed {MAX_TICKET_QUANTITY}")
        for ticket_type_id, quantity in merged.items()
        if quantity > MAX_TICKET_QUANTITY
    ]
    if too_many:
        raise RegistrationRejected(too_many)
    return merged


class RegistrationService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def register(self, caller, event_id, selections: Iterable[TicketSelection]) -> List[Registration]:
        """
        Book tickets for ``caller``.

        Args:
            caller: The attendee registering
            event_id: Event to register for
            selections: (ticket_type_id, quantity) pairs

        Returns:
            One pending Registration per ticket type, each with a unique confirmation code

        Raises:
            NotFound: Event does not exist
            EventNotOpen: Event is not accepting registrations
            InvalidQuantity: Empty cart
            RegistrationRejected: One or more selections failed; nothing was booked
        """
        ensure_allowed(caller, Action.registration_create, ResourceRef(user_id=getattr(caller, "id", None)))
        event = await repo.get_event(self.session, event_id)
        if event is None:
            raise NotFound("Event", event_id)
        if not is_open_for_registration(event):
            raise EventNotOpen(event.id)

        cart = merge_selections(selections)
        ticket_types = await repo.get_ticket_types_by_ids(self.session, cart.keys())

        errors: List[DomainError] = []
        for ticket_type_id in cart:
            tt = ticket_types.get(ticket_type_id)
            if tt is None or tt.event_id != event.id or not tt.is_active:
                errors.append(TicketTypeInactive(ticket_type_id))
        if errors:
            raise RegistrationRejected(errors)

        try:
            # Fixed lock order so concurrent carts sharing ticket types cannot deadlock
            sold_out = [
                ticket_type_id
                for ticket_type_id, quantity in sorted(cart.items(), key=lambda line: str(line[0]))
                if not await repo.reserve_tickets(self.session, ticket_type_id, event.id, quantity)
            ]
            if sold_out:
                await self.session.rollback()
                raise RegistrationRejected(await self._capacity_errors(sold_out))

            codes = await self._confirmation_codes(len(cart))
            rows = [
                Registration(
                    event_id=event.id,
                    user_id=caller.id,
                    ticket_type_id=ticket_type_id,
                    quantity=quantity,
                    total_amount=Decimal(ticket_types[ticket_type_id].price) * quantity,
                    status=RegistrationStatus.pending,
                    confirmation_code=code,
                )
                for (ticket_type_id, quantity), code in zip(cart.items(), codes)
            ]
            await repo.add_registrations(self.session, rows)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        for row in rows:
            await self.session.refresh(row)
        logger.info(
            f"User {caller.id} registered for event {event.id}: "
            + ", ".join(f"{r.ticket_type_id} x{r.quantity}" for r in rows)
        )
        await publisher.publish_event(
            "registration.created",
            {
                "event_id": str(event.id),
                "user_id": str(caller.id),
                "registration_ids": [str(r.id) for r in rows],
                "confirmation_codes": [r.confirmation_code for r in rows],
            },
        )
        return rows

    async def list_my_registrations(self, caller) -> List[Registration]:
        ensure_allowed(caller, Action.registration_read, ResourceRef(user_id=getattr(caller, "id", None)))
        return await repo.list_registrations(self.session, user_id=caller.id)

    async def get_registration(self, caller, registration_id) -> Registration:
        """Visible to the attendee who holds it, the event owner and admins."""
        registration = await self._load(registration_id)
        if not authorize(caller, Action.registration_read, registration):
            event = await repo.get_event(self.session, registration.event_id)
            ensure_allowed(caller, Action.registration_manage, event)
        return registration

    async def list_event_registrations(self, caller, event_id) -> List[Registration]:
        event = await repo.get_event(self.session, event_id)
        if event is None:
            raise NotFound("Event", event_id)
        ensure_allowed(caller, Action.event_list_registrations, event)
        return await repo.list_registrations(self.session, event_id=event.id)

    async def change_status(self, caller, registration_id, target: RegistrationStatus) -> Registration:
        """
        Cancel, confirm or check in a registration.

        Attendees may only cancel their own. Confirming and checking in belong to the
        event owner and admins. Cancelling does not return tickets to inventory.
        """
        registration = await self._load(registration_id)
        target = RegistrationStatus(target)
        own_cancel = target is RegistrationStatus.cancelled and authorize(
            caller, Action.registration_cancel, registration
        )
        if not own_cancel:
            event = await repo.get_event(self.session, registration.event_id)
            ensure_allowed(caller, Action.registration_manage, event)

        previous = RegistrationStatus(registration.status)
        registration.status = change_registration_status(previous, target)
        await self.session.commit()
        await self.session.refresh(registration)
        logger.info(f"Registration {registration.id} {previous.value} -> {target.value} by {caller.id}")
        await publisher.publish_event(
            f"registration.{target.value}",
            {"registration_id": str(registration.id), "user_id": str(registration.user_id)},
        )
        return registration

    async def _load(self, registration_id) -> Registration:
        registration = await repo.get_registration(self.session, registration_id)
        if registration is None:
            raise NotFound("Registration", registration_id)
        return registration

    async def _capacity_errors(self, ticket_type_ids) -> List[DomainError]:
        """Describe why each reservation failed, read after the cart was rolled back."""
        current = await repo.get_ticket_types_by_ids(self.session, ticket_type_ids)
        errors: List[DomainError] = []
        for ticket_type_id in ticket_type_ids:
            tt = current.get(ticket_type_id)
            if tt is None or not tt.is_active:
                errors.append(TicketTypeInactive(ticket_type_id))
            else:
                errors.append(InsufficientCapacity(ticket_type_id, remaining=tt.quantity_remaining))
        return errors

    async def _confirmation_codes(self, count: int) -> List[str]:
        """Fresh codes, distinct within the batch and from every stored code."""
        for _ in range(settings.CONFIRMATION_CODE_ATTEMPTS):
            codes = {confirmation_code(settings.CONFIRMATION_CODE_LENGTH) for _ in range(count)}
            if len(codes) < count:
                continue
            if not await repo.existing_confirmation_codes(self.session, codes):
                return list(codes)
        raise InvalidState("Could not allocate confirmation codes, please retry")
