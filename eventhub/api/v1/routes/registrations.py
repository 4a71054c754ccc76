from fastapi import APIRouter, Depends, Request, status
from eventhub.schemas import RegistrationCreate, RegistrationOut, RegistrationBatchOut, RegistrationStatusUpdate
from eventhub.db.session import get_session
from eventhub.services.registration_service import RegistrationService
from eventhub.auth import get_current_user
from eventhub.api.v1.limiter import limiter
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

router = APIRouter(prefix="/registrations", tags=["registrations"])


def get_registration_service(session: AsyncSession = Depends(get_session)) -> RegistrationService:
    return RegistrationService(session)


@router.post("", response_model=RegistrationBatchOut, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def register_endpoint(
    request: Request,
    payload: RegistrationCreate,
    user=Depends(get_current_user),
    registration_service: RegistrationService = Depends(get_registration_service)
):
    """
    Book one or more ticket types for an event.

    All selections succeed together or none do. On failure the body lists one error
    per offending selection; 409 when any ticket type is sold out, 400 otherwise.
    """
    rows = await registration_service.register(user, payload.event_id, payload.selections)
    return RegistrationBatchOut(registrations=[RegistrationOut.model_validate(r) for r in rows])


@router.get("", response_model=List[RegistrationOut])
async def list_my_registrations(
    user=Depends(get_current_user),
    registration_service: RegistrationService = Depends(get_registration_service)
):
    return await registration_service.list_my_registrations(user)


@router.get("/{registration_id}", response_model=RegistrationOut)
async def get_registration_endpoint(
    registration_id: UUID,
    user=Depends(get_current_user),
    registration_service: RegistrationService = Depends(get_registration_service)
):
    return await registration_service.get_registration(user, registration_id)


@router.patch("/{registration_id}", response_model=RegistrationOut)
async def update_registration_status(
    registration_id: UUID,
    payload: RegistrationStatusUpdate,
    user=Depends(get_current_user),
    registration_service: RegistrationService = Depends(get_registration_service)
):
    return await registration_service.change_status(user, registration_id, payload.status)
