from sqlalchemy import Column, String, Text, Boolean, Integer, DateTime, ForeignKey, func, Enum, Index, Uuid
import uuid
from sqlalchemy.orm import relationship
from eventhub.db.session import Base
from eventhub.db.models.base import utcnow
from eventhub.db.models.user import ApprovalStatus
import enum


class EventStatus(str, enum.Enum):
    draft = "draft"
    published = "published"
    registration_open = "registration_open"
    registration_closed = "registration_closed"
    ongoing = "ongoing"
    completed = "completed"
    cancelled = "cancelled"


class Event(Base):
    __tablename__ = "events"
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    slug = Column(String(300), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    venue = Column(String(255), nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    is_virtual = Column(Boolean, default=False, nullable=False)
    virtual_platform = Column(String(100), nullable=True)
    virtual_url = Column(String(500), nullable=True)
    # Null means unlimited
    capacity = Column(Integer, nullable=True)
    banner_url = Column(String(500), nullable=True)
    registration_start_date = Column(DateTime(timezone=True), nullable=True)
    registration_end_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(Enum(EventStatus), default=EventStatus.draft, nullable=False)
    approval_status = Column(Enum(ApprovalStatus), default=ApprovalStatus.pending_approval, nullable=False)
    approved_by = Column(Uuid(as_uuid=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approval_notes = Column(Text, nullable=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("user_profiles.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    creator = relationship("UserProfile")

    # Indexes for frequently queried fields
    __table_args__ = (
        Index("idx_event_visibility", "approval_status", "status"),
        Index("idx_event_organizer", "created_by"),
        Index("idx_event_created_at", "created_at"),
        Index("idx_event_start_date", "start_date"),
    )
