from fastapi import APIRouter, Depends, Query, status
from eventhub.schemas import UserOut, StatsOut
from eventhub.db.session import get_session
from eventhub.db.models.user import Role
from eventhub.services.user_service import UserService
from eventhub.auth import get_current_user
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

router = APIRouter(prefix="/users", tags=["users"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])


def get_user_service(session: AsyncSession = Depends(get_session)) -> UserService:
    return UserService(session)


@router.get("", response_model=List[UserOut])
async def list_users(
    role: Optional[Role] = Query(None),
    user=Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    return await user_service.list_users(user, role)


@router.patch("/{user_id}/suspend", response_model=UserOut)
async def suspend_user(
    user_id: UUID,
    user=Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    return await user_service.suspend(user, user_id)


@router.patch("/{user_id}/reactivate", response_model=UserOut)
async def reactivate_user(
    user_id: UUID,
    user=Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    return await user_service.reactivate(user, user_id)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    user=Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Remove the profile with its registrations and the events it owns."""
    await user_service.delete_user(user, user_id)
    return None


@admin_router.get("/stats", response_model=StatsOut)
async def platform_stats(
    user=Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    return await user_service.stats(user)
