"""Organization onboarding with a free trial, and organization lookups."""
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.core.config import settings
from eventhub.core.errors import InvalidState, NotFound
from eventhub.core.identifiers import unique_slug
from eventhub.core.logging import logger
from eventhub.core.permissions import Action, ResourceRef, authorize, ensure_allowed
from eventhub.db import repositories as repo
from eventhub.db.models.base import utcnow
from eventhub.db.models.organization import Organization, SubscriptionPlan, SubscriptionStatus
from eventhub.db.models.user import ApprovalStatus, Role
from eventhub.events import publisher

SLUG_ATTEMPTS = 5

# Roles that become management when they onboard an organization
PROMOTABLE_ROLES = frozenset({Role.attendee, Role.speaker, Role.staff, Role.volunteer, Role.guest})


class OrganizationService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_organization(
        self,
        caller,
        name: str,
        business_type: Optional[str],
        owner_user_id,
        logo_url: Optional[str] = None,
    ) -> Organization:
        """
        Create an organization on a trial and make ``owner_user_id`` its owner.

        The organization row and the owner's profile change (organization link, owner
        flag, management role) are committed together or not at all.

        Raises:
            NotFound: Owner profile does not exist
            Forbidden: Caller may not create an organization for that owner
            InvalidState: Owner already belongs to an organization, or holds a role
                (admin, super_admin, management, organizer) that onboarding would replace
        """
        owner = await repo.get_user(self.session, owner_user_id)
        if owner is None:
            raise NotFound("User", owner_user_id)
        ensure_allowed(caller, Action.organization_create, ResourceRef(user_id=owner.id))
        if owner.organization_id is not None:
            raise InvalidState(
                "User already belongs to an organization",
                current_state={"organization_id": str(owner.organization_id)},
            )
        if Role(owner.role) not in PROMOTABLE_ROLES:
            raise InvalidState(
                "Only attendee accounts can become organization owners",
                current_state={"role": Role(owner.role).value},
            )

        now = utcnow()
        try:
            org = await repo.create_organization(
                self.session,
                name=name,
                slug=await self._new_slug(name),
                business_type=business_type,
                logo_url=logo_url,
                subscription_status=SubscriptionStatus.trialing,
                subscription_plan=SubscriptionPlan(settings.DEFAULT_SUBSCRIPTION_PLAN),
                trial_ends_at=now + timedelta(days=settings.TRIAL_PERIOD_DAYS),
                created_by=owner.id,
            )
            owner.organization_id = org.id
            owner.is_organization_owner = True
            owner.role = Role.management
            owner.approval_status = ApprovalStatus.approved
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(org)
        logger.info(f"Organization {org.slug} created for owner {owner.id} by {caller.id}, trial ends {org.trial_ends_at}")
        await publisher.publish_event(
            "organization.created",
            {"organization_id": str(org.id), "owner_id": str(owner.id), "trial_ends_at": org.trial_ends_at},
        )
        return org

    async def get_organization(self, caller, organization_id) -> Organization:
        org = await repo.get_organization(self.session, organization_id)
        if org is None:
            raise NotFound("Organization", organization_id)
        ensure_allowed(caller, Action.organization_read, ResourceRef(organization_id=org.id))
        return org

    async def list_organizations(self, caller) -> List[Organization]:
        """Every organization for platform roles, otherwise only the caller's own."""
        if authorize(caller, Action.organization_read):
            return await repo.list_organizations(self.session)
        ensure_allowed(
            caller,
            Action.organization_read,
            ResourceRef(organization_id=getattr(caller, "organization_id", None)),
        )
        return await repo.list_organizations(self.session, organization_id=caller.organization_id)

    async def _new_slug(self, name: str) -> str:
        for _ in range(SLUG_ATTEMPTS):
            slug = unique_slug(name)
            if not await repo.organization_slug_exists(self.session, slug):
                return slug
        raise InvalidState("Could not allocate a unique slug, please retry")
