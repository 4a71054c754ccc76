"""Authentication service for profile registration, login and JWT token operations."""
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.schemas import UserCreate, LoginRequest
from eventhub.db.models.user import Role, ApprovalStatus, UserProfile
from eventhub.db.repositories import create_user as db_create_user, get_user_by_email as db_get_user_by_email, get_user as db_get_user
from eventhub.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    revoke_token,
    token_claims,
    validate_password,
    verify_password,
)
from eventhub.core.errors import Forbidden, InvalidInput, Unauthenticated
from eventhub.core.permissions import DenyReason
from eventhub.core.logging import logger

# Roles nobody can pick for themselves at signup
PRIVILEGED_ROLES = frozenset({Role.admin, Role.super_admin, Role.management})


class AuthService:
    """
    Service layer for authentication operations.

    Handles profile registration, login, token refresh and logout.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def register(self, payload: UserCreate) -> UserProfile:
        """
        Register a new profile with password validation.

        Organizers start in ``pending_approval`` and act as attendees until an admin
        approves them; every other self-chosen role is approved immediately.

        Raises:
            InvalidInput: If the password is weak or the email already exists
            Forbidden: If a privileged role is requested
        """
        try:
            validate_password(payload.password)
        except ValueError as e:
            raise InvalidInput(str(e))

        if payload.role in PRIVILEGED_ROLES:
            raise Forbidden(DenyReason.forbidden_role.value, "Role cannot be self-assigned")

        existing = await db_get_user_by_email(self.session, payload.email)
        if existing:
            raise InvalidInput("Email already registered")

        approval = ApprovalStatus.pending_approval if payload.role is Role.organizer else ApprovalStatus.approved
        user = await db_create_user(
            self.session,
            email=payload.email,
            hashed_password=hash_password(payload.password),
            first_name=payload.first_name,
            last_name=payload.last_name,
            role=payload.role,
            approval_status=approval,
        )
        await self.session.commit()
        await self.session.refresh(user)
        logger.info(f"Registered {user.role.value} {user.email} ({approval.value})")
        return user

    async def login(self, form_data: LoginRequest) -> dict:
        """
        Authenticate a profile and issue access and refresh tokens.

        Raises:
            Unauthenticated: If credentials are invalid or the account is suspended
        """
        user = await db_get_user_by_email(self.session, form_data.email)
        if not user or not verify_password(form_data.password, user.hashed_password):
            raise Unauthenticated("Incorrect credentials")
        if not user.is_active:
            raise Unauthenticated("Account is suspended")

        claims = token_claims(user)
        return {
            "access_token": create_access_token(claims),
            "refresh_token": create_refresh_token(claims),
            "token_type": "bearer",
        }

    async def refresh_access_token(self, refresh_token: str) -> dict:
        """
        Issue a new access token from a valid refresh token.

        Claims are rebuilt from the stored profile so role changes since login apply.
        """
        try:
            token_data = decode_token(refresh_token)
        except ValueError:
            raise Unauthenticated("Invalid refresh token")

        if token_data.get("type") != "refresh":
            raise Unauthenticated("Invalid token type")

        user = await db_get_user(self.session, token_data.get("user_id") or token_data.get("sub"))
        if not user or not user.is_active:
            raise Unauthenticated("Invalid refresh token")

        return {
            "access_token": create_access_token(token_claims(user)),
            "token_type": "bearer",
        }

    async def logout(self, token: str):
        await revoke_token(token)
