from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, func, Enum, Index, Boolean
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
import enum
from memberhub.db.session import Base, utcnow
from memberhub.db.models.user import AccountStatus


class SenderRole(str, enum.Enum):
    admin = "admin"
    user = "user"


class AccountApproval(Base):
    """The review thread attached to one registration."""
    __tablename__ = "account_approvals"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True)
    location = Column(String(255), nullable=True)
    how_did_you_hear = Column(String(100), nullable=True)
    how_did_you_hear_other = Column(String(255), nullable=True)
    referred_by = Column(String(255), nullable=True)
    referral_notes = Column(Text, nullable=True)

    status = Column(Enum(AccountStatus), nullable=False, default=AccountStatus.pending)
    awaiting_response_from = Column(Enum(SenderRole), nullable=True)
    unread_admin = Column(Integer, nullable=False, default=0)
    unread_user = Column(Integer, nullable=False, default=0)

    submitted_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    last_message_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        Index('idx_approval_status', 'status'),
        Index('idx_approval_submitted', 'submitted_at'),
    )


class ApprovalMessage(Base):
    __tablename__ = "approval_messages"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    approval_id = Column(UUID(as_uuid=True), ForeignKey("account_approvals.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    sender_role = Column(Enum(SenderRole), nullable=False)
    sender_name = Column(String(255), nullable=True)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        Index('idx_approval_message_thread', 'approval_id', 'created_at'),
    )
