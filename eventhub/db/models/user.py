from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, func, Enum, Index, Uuid
import uuid
from sqlalchemy.orm import relationship
from eventhub.db.session import Base
from eventhub.db.models.base import utcnow
import enum


class Role(str, enum.Enum):
    attendee = "attendee"
    organizer = "organizer"
    admin = "admin"
    super_admin = "super_admin"
    management = "management"
    speaker = "speaker"
    staff = "staff"
    volunteer = "volunteer"
    guest = "guest"


class ApprovalStatus(str, enum.Enum):
    pending_approval = "pending_approval"
    approved = "approved"
    rejected = "rejected"


class UserProfile(Base):
    __tablename__ = "user_profiles"
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(Enum(Role), default=Role.attendee, nullable=False)
    approval_status = Column(Enum(ApprovalStatus), default=ApprovalStatus.approved, nullable=False)
    approved_by = Column(Uuid(as_uuid=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approval_notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    organization_id = Column(Uuid(as_uuid=True), ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True)
    is_organization_owner = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    organization = relationship("Organization", foreign_keys=[organization_id])

    __table_args__ = (
        Index("idx_profile_role_approval", "role", "approval_status"),
        Index("idx_profile_organization", "organization_id"),
    )

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)
