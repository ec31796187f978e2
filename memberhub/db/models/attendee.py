from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func, Enum, Index, Boolean, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
import enum
from memberhub.db.session import Base, utcnow
from memberhub.db.models.payment import PaymentStatus


class AttendeeStatus(str, enum.Enum):
    going = "going"
    not_going = "not_going"
    pending = "pending"
    waitlisted = "waitlisted"


class AttendeeType(str, enum.Enum):
    primary = "primary"
    family_member = "family_member"
    guest = "guest"


class Relationship(str, enum.Enum):
    self = "self"
    spouse = "spouse"
    child = "child"
    guest = "guest"


class AgeGroup(str, enum.Enum):
    infant = "0-2"
    toddler = "3-5"
    child = "6-10"
    youth = "11+"
    adult = "adult"


class Attendee(Base):
    """
    One person's RSVP for one event.

    A user holds at most one ``primary`` row per event (themselves) plus any
    number of family-member or guest rows they answered for.
    """
    __tablename__ = "attendees"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_id = Column(UUID(as_uuid=True), ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    attendee_type = Column(Enum(AttendeeType), nullable=False, default=AttendeeType.primary)
    relationship_type = Column("relationship", Enum(Relationship), nullable=False, default=Relationship.self)
    name = Column(String(100), nullable=False)
    age_group = Column(Enum(AgeGroup, values_callable=lambda e: [m.value for m in e]), nullable=True)
    rsvp_status = Column(Enum(AttendeeStatus), nullable=False, default=AttendeeStatus.going)
    family_member_id = Column(UUID(as_uuid=True), ForeignKey("family_members.id", ondelete="SET NULL"), nullable=True)

    waitlist_position = Column(Integer, nullable=True)
    waitlist_joined_at = Column(DateTime(timezone=True), nullable=True)
    original_waitlist_joined_at = Column(DateTime(timezone=True), nullable=True)
    promoted_from_waitlist = Column(Boolean, nullable=False, default=False)
    promoted_at = Column(DateTime(timezone=True), nullable=True)
    promotion_number = Column(Integer, nullable=True)

    payment_status = Column(Enum(PaymentStatus), nullable=True)
    payment_transaction_id = Column(UUID(as_uuid=True), nullable=True)
    price = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    user = relationship("User")
    family_member = relationship("FamilyMember")

    __table_args__ = (
        UniqueConstraint('event_id', 'family_member_id', name='uq_event_family_member'),
        Index(
            'uq_event_user_primary', 'event_id', 'user_id', unique=True,
            postgresql_where=text("attendee_type = 'primary'"),
            sqlite_where=text("attendee_type = 'primary'"),
        ),
        Index('idx_attendee_event_status', 'event_id', 'rsvp_status'),
        Index('idx_attendee_event_user', 'event_id', 'user_id'),
    )

    @property
    def is_primary(self) -> bool:
        return self.attendee_type == AttendeeType.primary
