from pydantic import BaseModel, EmailStr, Field, AliasChoices
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from decimal import Decimal

from eventhub.db.models.user import Role, ApprovalStatus
from eventhub.db.models.event import EventStatus
from eventhub.db.models.registration import RegistrationStatus
from eventhub.db.models.ticket_type import MAX_TICKET_QUANTITY
from eventhub.db.models.organization import SubscriptionStatus, SubscriptionPlan
from eventhub.core.lifecycle import ReviewAction


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenResponse(BaseModel):
    """Token response with refresh token."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role = Role.attendee


class UserOut(BaseModel):
    id: UUID
    email: EmailStr
    first_name: Optional[str]
    last_name: Optional[str]
    role: Role
    approval_status: ApprovalStatus
    approval_notes: Optional[str] = None
    approved_at: Optional[datetime] = None
    is_active: bool
    organization_id: Optional[UUID] = None
    is_organization_owner: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReviewRequest(BaseModel):
    """Body of the approve/reject endpoints for events and organizer accounts."""
    action: ReviewAction
    notes: Optional[str] = None


class EventCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255, validation_alias=AliasChoices("name", "title"))
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    venue: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    is_virtual: bool = False
    virtual_platform: Optional[str] = None
    virtual_url: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=0)
    banner_url: Optional[str] = None
    registration_start_date: Optional[datetime] = None
    registration_end_date: Optional[datetime] = None
    # Only honoured for admin-created events
    status: Optional[EventStatus] = None


class EventUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    venue: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    is_virtual: Optional[bool] = None
    virtual_platform: Optional[str] = None
    virtual_url: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=0)
    banner_url: Optional[str] = None
    registration_start_date: Optional[datetime] = None
    registration_end_date: Optional[datetime] = None
    status: Optional[EventStatus] = None

    class Config:
        extra = "forbid"


class EventOut(BaseModel):
    id: UUID
    name: str
    slug: str
    description: Optional[str]
    start_date: datetime
    end_date: datetime
    venue: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    is_virtual: bool = False
    virtual_platform: Optional[str] = None
    virtual_url: Optional[str] = None
    capacity: Optional[int] = None
    banner_url: Optional[str] = None
    registration_start_date: Optional[datetime] = None
    registration_end_date: Optional[datetime] = None
    status: EventStatus
    approval_status: ApprovalStatus
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    approval_notes: Optional[str] = None
    created_by: UUID
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EventListResponse(BaseModel):
    events: List[EventOut]
    user_role: Role


class TicketTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(default=Decimal("0"), ge=0)
    quantity_available: Optional[int] = Field(default=None, ge=0, le=MAX_TICKET_QUANTITY)
    is_active: bool = True


class TicketTypeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    quantity_available: Optional[int] = Field(default=None, ge=0, le=MAX_TICKET_QUANTITY)
    is_active: Optional[bool] = None

    class Config:
        extra = "forbid"


class TicketTypeOut(BaseModel):
    id: UUID
    event_id: UUID
    name: str
    description: Optional[str] = None
    price: Decimal
    quantity_available: Optional[int]
    quantity_sold: int
    quantity_remaining: Optional[int] = None
    is_active: bool

    class Config:
        from_attributes = True


class TicketSelection(BaseModel):
    ticket_type_id: UUID
    # Range is checked by the registration service so it can be reported per ticket type
    quantity: int


class RegistrationCreate(BaseModel):
    event_id: UUID
    selections: List[TicketSelection]


class RegistrationOut(BaseModel):
    id: UUID
    event_id: UUID
    user_id: UUID
    ticket_type_id: UUID
    quantity: int
    total_amount: Decimal
    status: RegistrationStatus
    confirmation_code: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RegistrationBatchOut(BaseModel):
    registrations: List[RegistrationOut]


class RegistrationStatusUpdate(BaseModel):
    status: RegistrationStatus


class OrganizationCreate(BaseModel):
    company_name: str = Field(min_length=1, max_length=255, alias="companyName")
    business_type: Optional[str] = Field(default=None, alias="businessType")
    logo_url: Optional[str] = Field(default=None, alias="logoUrl")
    user_id: UUID = Field(alias="userId")

    class Config:
        populate_by_name = True


class OrganizationOut(BaseModel):
    id: UUID
    name: str
    slug: str
    business_type: Optional[str] = None
    logo_url: Optional[str] = None
    subscription_status: SubscriptionStatus
    subscription_plan: SubscriptionPlan
    trial_ends_at: Optional[datetime] = None
    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StatsOut(BaseModel):
    total_users: int
    pending_organizers: int
    total_events: int
    active_events: int
    upcoming_events: int
    total_registrations: int
    total_revenue: Decimal
