"""Database models package."""
from memberhub.db.models.user import User, RoleEnum, AccountStatus, MembershipTier
from memberhub.db.models.payment import PaymentTransaction, PaymentStatus, PaymentMethod, RefundStatus
from memberhub.db.models.attendee import Attendee, AttendeeStatus, AttendeeType, Relationship, AgeGroup
from memberhub.db.models.family import FamilyMember
from memberhub.db.models.event import Event, EventAgeGroupPrice
from memberhub.db.models.approval import AccountApproval, ApprovalMessage, SenderRole
from memberhub.db.models.notification import Notification

__all__ = [
    "User", "RoleEnum", "AccountStatus", "MembershipTier",
    "Event", "EventAgeGroupPrice",
    "Attendee", "AttendeeStatus", "AttendeeType", "Relationship", "AgeGroup",
    "FamilyMember",
    "AccountApproval", "ApprovalMessage", "SenderRole",
    "PaymentTransaction", "PaymentStatus", "PaymentMethod", "RefundStatus",
    "Notification",
]
