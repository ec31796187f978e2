from sqlalchemy import Column, String, Text, DateTime, ForeignKey, func, Index, Boolean, JSON
from sqlalchemy.dialects.postgresql import UUID
import uuid
from memberhub.db.session import Base, utcnow


class Notification(Base):
    __tablename__ = "notifications"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(64), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    data = Column(JSON, nullable=True)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        Index('idx_notification_user_read', 'user_id', 'read'),
    )
