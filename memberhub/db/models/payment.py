from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, func, Enum, Index, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
import enum
from memberhub.db.session import Base, utcnow


class PaymentStatus(str, enum.Enum):
    unpaid = "unpaid"
    pending = "pending"
    paid = "paid"
    refunded = "refunded"
    failed = "failed"


class PaymentMethod(str, enum.Enum):
    card = "card"
    bank_transfer = "bank_transfer"
    cash = "cash"
    other = "other"


class RefundStatus(str, enum.Enum):
    none = "none"
    partial = "partial"
    full = "full"
    requested = "requested"


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_id = Column(UUID(as_uuid=True), ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.pending)
    method = Column(Enum(PaymentMethod), nullable=False, default=PaymentMethod.card)
    refund_status = Column(Enum(RefundStatus), nullable=False, default=RefundStatus.none)
    refunded_amount = Column(Integer, nullable=False, default=0)
    refund_reason = Column(Text, nullable=True)
    # [{"attendee_id", "attendee_name", "age_group", "price", "quantity", "subtotal"}]
    breakdown = Column(JSON, nullable=False, default=list)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    user = relationship("User")
    event = relationship("Event")

    __table_args__ = (
        Index('idx_payment_event', 'event_id'),
        Index('idx_payment_user', 'user_id'),
        Index('idx_payment_event_user', 'event_id', 'user_id'),
    )
