from fastapi import APIRouter, Depends, Query
from eventhub.schemas import UserOut, ReviewRequest
from eventhub.db.session import get_session
from eventhub.db.models.user import ApprovalStatus
from eventhub.services.approval_service import ApprovalService
from eventhub.auth import get_current_user
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

router = APIRouter(prefix="/organizers", tags=["organizers"])


def get_approval_service(session: AsyncSession = Depends(get_session)) -> ApprovalService:
    return ApprovalService(session)


@router.get("", response_model=List[UserOut])
async def list_organizers(
    filter: Optional[ApprovalStatus] = Query(None, description="Only organizers in this approval status"),
    user=Depends(get_current_user),
    approval_service: ApprovalService = Depends(get_approval_service)
):
    return await approval_service.list_organizers(user, filter)


@router.patch("/{organizer_id}", response_model=UserOut)
async def review_organizer(
    organizer_id: UUID,
    payload: ReviewRequest,
    user=Depends(get_current_user),
    approval_service: ApprovalService = Depends(get_approval_service)
):
    """Approve or reject an organizer account. Repeating the same decision changes nothing."""
    return await approval_service.review_organizer(user, organizer_id, payload.action, payload.notes)
