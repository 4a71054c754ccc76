from sqlalchemy import Column, String, Integer, Numeric, DateTime, ForeignKey, func, Enum, Index, CheckConstraint, Uuid
import uuid
from sqlalchemy.orm import relationship
from eventhub.db.session import Base
from eventhub.db.models.base import utcnow
import enum


class RegistrationStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    checked_in = "checked_in"


class Registration(Base):
    __tablename__ = "registrations"
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_id = Column(Uuid(as_uuid=True), ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False)
    ticket_type_id = Column(Uuid(as_uuid=True), ForeignKey("ticket_types.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(Enum(RegistrationStatus), default=RegistrationStatus.pending, nullable=False)
    confirmation_code = Column(String(32), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("UserProfile")
    event = relationship("Event")
    ticket_type = relationship("TicketType")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_registration_quantity_positive"),
        Index("idx_registration_user", "user_id"),
        Index("idx_registration_event", "event_id"),
        Index("idx_registration_ticket_type", "ticket_type_id"),
    )
