from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, func, Enum, Index, Boolean, JSON, UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
import uuid
from sqlalchemy.orm import relationship
from memberhub.db.session import Base, utcnow
from memberhub.db.models.attendee import AgeGroup


class Event(Base):
    __tablename__ = "events"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)

    # NULL or 0 means unlimited
    capacity = Column(Integer, nullable=True, default=0)
    waitlist_enabled = Column(Boolean, nullable=False, default=False)
    waitlist_limit = Column(Integer, nullable=True)
    attending_count = Column(Integer, nullable=False, default=0)

    recurrence_rule = Column(Text, nullable=True)
    recurrence_timezone = Column(String(64), nullable=True)
    recurrence_exdates = Column(JSON, nullable=True)

    # Pricing; amounts in cents
    is_free = Column(Boolean, nullable=False, default=True)
    requires_payment = Column(Boolean, nullable=False, default=False)
    adult_price = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    payment_deadline = Column(DateTime(timezone=True), nullable=True)
    refund_allowed = Column(Boolean, nullable=False, default=False)
    refund_deadline = Column(DateTime(timezone=True), nullable=True)
    refund_fee_percentage = Column(Integer, nullable=False, default=0)

    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    creator = relationship("User")
    age_group_prices = relationship(
        "EventAgeGroupPrice", cascade="all, delete-orphan", lazy="selectin", back_populates="event"
    )

    __table_args__ = (
        Index('idx_event_start', 'start_at'),
        Index('idx_event_end', 'end_at'),
        Index('idx_event_created_by', 'created_by'),
        Index('idx_event_created_at', 'created_at'),
    )

    @property
    def has_capacity_limit(self) -> bool:
        return bool(self.capacity and self.capacity > 0)

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence_rule and self.recurrence_rule.strip())

    def price_map(self) -> dict:
        return {p.age_group: p.price for p in self.age_group_prices}


class EventAgeGroupPrice(Base):
    __tablename__ = "event_age_group_prices"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_id = Column(UUID(as_uuid=True), ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    age_group = Column(Enum(AgeGroup, values_callable=lambda e: [m.value for m in e]), nullable=False)
    price = Column(Integer, nullable=False, default=0)

    event = relationship("Event", back_populates="age_group_prices")

    __table_args__ = (
        UniqueConstraint('event_id', 'age_group', name='uq_event_age_group_price'),
    )
