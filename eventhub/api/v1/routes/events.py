from fastapi import APIRouter, Depends, Query, status
from eventhub.schemas import (
    EventCreate,
    EventUpdate,
    EventOut,
    EventListResponse,
    ReviewRequest,
    TicketTypeCreate,
    TicketTypeUpdate,
    TicketTypeOut,
    RegistrationOut,
)
from eventhub.db.session import get_session
from eventhub.services.event_service import EventService
from eventhub.services.registration_service import RegistrationService
from eventhub.auth import get_current_user
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

router = APIRouter(prefix="/events", tags=["events"])


def get_event_service(session: AsyncSession = Depends(get_session)) -> EventService:
    return EventService(session)


def get_registration_service(session: AsyncSession = Depends(get_session)) -> RegistrationService:
    return RegistrationService(session)


@router.get("", response_model=EventListResponse)
async def list_events(
    filter: Optional[str] = Query(None, description="Approval status or event status to narrow by, or 'all'"),
    search: Optional[str] = Query(None, description="Case-insensitive match on name and description"),
    user=Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    """
    The event catalog for the caller.

    - admins: every event
    - organizers: their own events
    - everyone else: approved events that are published or open for registration
    """
    role, events = await event_service.list_events(user, filter=filter, search=search)
    return EventListResponse(events=events, user_role=role)


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    payload: EventCreate,
    user=Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    return await event_service.create_event(user, payload)


@router.get("/{event_id}", response_model=EventOut)
async def get_event_detail(
    event_id: UUID,
    user=Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    return await event_service.get_event(user, event_id)


@router.patch("/{event_id}", response_model=EventOut)
async def update_event_endpoint(
    event_id: UUID,
    payload: EventUpdate,
    user=Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    return await event_service.update_event(user, event_id, payload)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_endpoint(
    event_id: UUID,
    user=Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    await event_service.delete_event(user, event_id)
    return None


@router.patch("/{event_id}/approve", response_model=EventOut)
async def review_event_endpoint(
    event_id: UUID,
    payload: ReviewRequest,
    user=Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    """Admin approval or rejection. The event is left in draft either way."""
    return await event_service.review_event(user, event_id, payload.action, payload.notes)


@router.post("/{event_id}/resubmit", response_model=EventOut)
async def resubmit_event_endpoint(
    event_id: UUID,
    user=Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    return await event_service.resubmit_event(user, event_id)


@router.get("/{event_id}/ticket-types", response_model=List[TicketTypeOut])
async def list_ticket_types_endpoint(
    event_id: UUID,
    user=Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    return await event_service.list_ticket_types(user, event_id)


@router.post("/{event_id}/ticket-types", response_model=TicketTypeOut, status_code=status.HTTP_201_CREATED)
async def create_ticket_type_endpoint(
    event_id: UUID,
    payload: TicketTypeCreate,
    user=Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    return await event_service.create_ticket_type(user, event_id, payload)


@router.patch("/{event_id}/ticket-types/{ticket_type_id}", response_model=TicketTypeOut)
async def update_ticket_type_endpoint(
    event_id: UUID,
    ticket_type_id: UUID,
    payload: TicketTypeUpdate,
    user=Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    return await event_service.update_ticket_type(user, event_id, ticket_type_id, payload)


@router.delete("/{event_id}/ticket-types/{ticket_type_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ticket_type_endpoint(
    event_id: UUID,
    ticket_type_id: UUID,
    user=Depends(get_current_user),
    event_service: EventService = Depends(get_event_service)
):
    await event_service.delete_ticket_type(user, event_id, ticket_type_id)
    return None


@router.get("/{event_id}/registrations", response_model=List[RegistrationOut])
async def list_event_registrations_endpoint(
    event_id: UUID,
    user=Depends(get_current_user),
    registration_service: RegistrationService = Depends(get_registration_service)
):
    return await registration_service.list_event_registrations(user, event_id)
