from fastapi import APIRouter, Depends, status
from eventhub.schemas import OrganizationCreate, OrganizationOut
from eventhub.db.session import get_session
from eventhub.services.organization_service import OrganizationService
from eventhub.auth import get_current_user
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

router = APIRouter(prefix="/organizations", tags=["organizations"])


def get_organization_service(session: AsyncSession = Depends(get_session)) -> OrganizationService:
    return OrganizationService(session)


@router.post("", response_model=OrganizationOut, status_code=status.HTTP_201_CREATED)
async def create_organization(
    payload: OrganizationCreate,
    user=Depends(get_current_user),
    organization_service: OrganizationService = Depends(get_organization_service)
):
    """
    Create an organization on a free trial.

    The owner (``userId``) becomes the organization's management owner in the same step.
    """
    return await organization_service.create_organization(
        user,
        name=payload.company_name,
        business_type=payload.business_type,
        owner_user_id=payload.user_id,
        logo_url=payload.logo_url,
    )


@router.get("", response_model=List[OrganizationOut])
async def list_organizations(
    user=Depends(get_current_user),
    organization_service: OrganizationService = Depends(get_organization_service)
):
    return await organization_service.list_organizations(user)


@router.get("/{organization_id}", response_model=OrganizationOut)
async def get_organization(
    organization_id: UUID,
    user=Depends(get_current_user),
    organization_service: OrganizationService = Depends(get_organization_service)
):
    return await organization_service.get_organization(user, organization_id)
