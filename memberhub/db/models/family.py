from sqlalchemy import Column, String, DateTime, ForeignKey, func, Enum, Index, Boolean
from sqlalchemy.dialects.postgresql import UUID
import uuid
from memberhub.db.session import Base, utcnow
from memberhub.db.models.attendee import AgeGroup


class FamilyMember(Base):
    """A household member a user can RSVP for without re-typing their details."""
    __tablename__ = "family_members"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(50), nullable=False)
    age_group = Column(Enum(AgeGroup, values_callable=lambda e: [m.value for m in e]), nullable=False, default=AgeGroup.adult)
    is_default_member = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    __table_args__ = (
        Index('idx_family_member_user', 'user_id'),
    )
