"""Authentication routes for registration, login, logout and token management."""
from fastapi import APIRouter, Depends, status, Request
from eventhub.schemas import UserCreate, UserOut, Token, TokenResponse, LoginRequest, RefreshTokenRequest
from eventhub.services.auth_service import AuthService
from eventhub.db.session import get_session
from eventhub.db.models.user import UserProfile
from eventhub.auth import get_current_user, get_bearer_token
from eventhub.api.v1.limiter import limiter
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(session: AsyncSession = Depends(get_session)) -> AuthService:
    return AuthService(session)


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
@limiter.limit("3/minute")
async def register(
    request: Request,
    payload: UserCreate,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Register a new account.

    Rate limit: 3 requests per minute. Organizer accounts start pending admin approval.
    """
    return await auth_service.register(payload)


@router.post("/login", response_model=TokenResponse)
@limiter.limit("5/minute")
async def login(
    request: Request,
    form_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Login endpoint returning access and refresh tokens.

    Rate limit: 5 requests per minute
    """
    return await auth_service.login(form_data)


@router.post("/refresh", response_model=Token)
@limiter.limit("10/minute")
async def refresh_access_token(
    request: Request,
    payload: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    return await auth_service.refresh_access_token(payload.refresh_token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    token: str = Depends(get_bearer_token),
    current_user: UserProfile = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Revoke the access token in the Authorization header."""
    await auth_service.logout(token)
    return None


@router.get("/me", response_model=UserOut)
async def get_current_user_info(current_user: UserProfile = Depends(get_current_user)):
    return current_user
