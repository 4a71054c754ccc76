from sqlalchemy import Column, String, Text, Boolean, Integer, Numeric, DateTime, ForeignKey, func, Index, CheckConstraint, Uuid
import uuid
from sqlalchemy.orm import relationship
from eventhub.db.session import Base
from eventhub.db.models.base import utcnow

# Largest value the INTEGER quantity columns hold
MAX_TICKET_QUANTITY = 2**31 - 1


class TicketType(Base):
    __tablename__ = "ticket_types"
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_id = Column(Uuid(as_uuid=True), ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    # Null means unlimited
    quantity_available = Column(Integer, nullable=True)
    quantity_sold = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    event = relationship("Event")

    __table_args__ = (
        CheckConstraint("quantity_sold >= 0", name="ck_ticket_sold_non_negative"),
        CheckConstraint(
            "quantity_available IS NULL OR quantity_sold <= quantity_available",
            name="ck_ticket_no_oversell",
        ),
        Index("idx_ticket_type_event", "event_id"),
    )

    @property
    def quantity_remaining(self):
        if self.quantity_available is None:
            return None
        return max(0, self.quantity_available - (self.quantity_sold or 0))
