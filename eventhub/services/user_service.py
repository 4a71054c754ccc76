from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.db import repositories as repo
from eventhub.db.models.user import Role, UserProfile
from eventhub.core.errors import InvalidState, NotFound
from eventhub.core.logging import logger
from eventhub.core.permissions import Action, ResourceRef, authorize, ensure_allowed
from eventhub.events import publisher
from typing import List, Optional


class UserService:
    """Account administration: listing, suspension and removal of profiles, plus platform stats."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_users(self, caller, role: Optional[Role] = None) -> List[UserProfile]:
        """All profiles for platform administrators, the caller's organization otherwise."""
        if authorize(caller, Action.user_manage):
            return await repo.list_users(self.session, role=role)
        ensure_allowed(
            caller,
            Action.user_manage,
            ResourceRef(organization_id=getattr(caller, "organization_id", None)),
        )
        return await repo.list_users(self.session, role=role, organization_id=caller.organization_id)

    async def suspend(self, caller, user_id) -> UserProfile:
        return await self._set_active(caller, user_id, False)

    async def reactivate(self, caller, user_id) -> UserProfile:
        return await self._set_active(caller, user_id, True)

    async def delete_user(self, caller, user_id) -> None:
        """
        Remove a profile along with its registrations, the events it owns and the
        organization it owns.

        Raises:
            InvalidState: When a caller tries to delete their own profile
        """
        user = await self._load_managed(caller, user_id)
        if user.id == caller.id:
            raise InvalidState("You cannot delete your own account")

        try:
            await repo.delete_user_cascade(self.session, user)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await repo.invalidate_event_caches()
        logger.info(f"User {user_id} deleted by {caller.id}")
        await publisher.publish_event("user.deleted", {"user_id": str(user_id)})

    async def stats(self, caller) -> dict:
        ensure_allowed(caller, Action.stats_read)
        return await repo.platform_stats(self.session)

    async def _set_active(self, caller, user_id, active: bool) -> UserProfile:
        user = await self._load_managed(caller, user_id)
        if user.id == caller.id:
            raise InvalidState("You cannot change the status of your own account")
        if user.is_active == active:
            return user

        user.is_active = active
        await self.session.commit()
        await self.session.refresh(user)
        logger.info(f"User {user.id} {'reactivated' if active else 'suspended'} by {caller.id}")
        await publisher.publish_event(
            "user.reactivated" if active else "user.suspended",
            {"user_id": str(user.id), "email": user.email},
        )
        return user

    async def _load_managed(self, caller, user_id) -> UserProfile:
        ensure_allowed(caller, Action.user_manage, ResourceRef(organization_id=getattr(caller, "organization_id", None)))
        user = await repo.get_user(self.session, user_id)
        if user is None:
            raise NotFound("User", user_id)
        ensure_allowed(caller, Action.user_manage, user)
        return user
