from sqlalchemy import Column, String, DateTime, func, Enum, Uuid
import uuid
from eventhub.db.session import Base
from eventhub.db.models.base import utcnow
import enum


class SubscriptionStatus(str, enum.Enum):
    trialing = "trialing"
    active = "active"
    past_due = "past_due"
    canceled = "canceled"
    incomplete = "incomplete"
    incomplete_expired = "incomplete_expired"
    unpaid = "unpaid"


class SubscriptionPlan(str, enum.Enum):
    free = "free"
    starter = "starter"
    professional = "professional"
    enterprise = "enterprise"


class Organization(Base):
    __tablename__ = "organizations"
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    # Immutable once issued
    slug = Column(String(120), unique=True, index=True, nullable=False)
    business_type = Column(String(100), nullable=True)
    logo_url = Column(String(500), nullable=True)
    subscription_status = Column(Enum(SubscriptionStatus), default=SubscriptionStatus.trialing, nullable=False)
    subscription_plan = Column(Enum(SubscriptionPlan), default=SubscriptionPlan.free, nullable=False)
    trial_ends_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(Uuid(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
