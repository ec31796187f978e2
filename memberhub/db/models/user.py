from sqlalchemy import Column, String, DateTime, func, Enum, Text, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
import uuid
from memberhub.db.session import Base, utcnow
import enum


class RoleEnum(str, enum.Enum):
    member = "member"
    admin = "admin"


class AccountStatus(str, enum.Enum):
    """Lifecycle of a registration; mirrors AccountApproval.status."""
    pending = "pending"
    needs_clarification = "needs_clarification"
    approved = "approved"
    rejected = "rejected"


class MembershipTier(str, enum.Enum):
    free = "free"
    basic = "basic"
    premium = "premium"
    vip = "vip"


class User(Base):
    __tablename__ = "users"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone_number = Column(String(32), nullable=True)
    role = Column(Enum(RoleEnum), default=RoleEnum.member, nullable=False)
    status = Column(Enum(AccountStatus), default=AccountStatus.pending, nullable=False, index=True)
    membership_tier = Column(Enum(MembershipTier), default=MembershipTier.free, nullable=False)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    @property
    def display_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.email

    @property
    def is_admin(self) -> bool:
        return self.role == RoleEnum.admin

    @property
    def is_approved(self) -> bool:
        return self.status == AccountStatus.approved
