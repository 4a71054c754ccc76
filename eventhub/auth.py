from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.db.session import get_session
from eventhub.db.models.user import UserProfile
from eventhub.db.repositories import get_user
from eventhub.core.errors import Forbidden, Unauthenticated
from eventhub.core.permissions import DenyReason
from eventhub.core.security import decode_token, is_token_revoked

# HTTPBearer shows a simple "Authorize" button in Swagger UI for pasting a JWT.
# auto_error is off so a missing header is reported as 401 like any other bad token.
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> UserProfile:
    """
    Resolve the calling profile from a bearer access token.

    Raises:
        Unauthenticated: Token missing, invalid, revoked, not an access token, or
            its profile no longer exists
        Forbidden: Profile is suspended
    """
    if credentials is None:
        raise Unauthenticated()
    token = credentials.credentials

    if await is_token_revoked(token):
        raise Unauthenticated("Token has been revoked")

    try:
        payload = decode_token(token)
    except ValueError:
        raise Unauthenticated("Could not validate credentials")

    if payload.get("type") != "access":
        raise Unauthenticated("Invalid token type")

    user_id = payload.get("sub") or payload.get("user_id")
    try:
        user = await get_user(session, user_id)
    except ValueError:
        raise Unauthenticated("Could not validate credentials")
    if not user:
        raise Unauthenticated("Could not validate credentials")
    if not user.is_active:
        raise Forbidden(DenyReason.forbidden_role.value, "Account is suspended")
    return user


def get_bearer_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> str:
    if credentials is None:
        raise Unauthenticated()
    return credentials.credentials
