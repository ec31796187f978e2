from pydantic import BaseModel, EmailStr, Field, AliasChoices, model_validator
from typing import Optional, List, Dict, Generic, TypeVar, Any
from uuid import UUID
from datetime import datetime, date
from memberhub.db.models.user import RoleEnum, AccountStatus, MembershipTier
from memberhub.db.models.attendee import AttendeeStatus, AttendeeType, Relationship, AgeGroup
from memberhub.db.models.approval import SenderRole
from memberhub.db.models.payment import PaymentStatus, PaymentMethod, RefundStatus

T = TypeVar("T")


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class TokenResponse(BaseModel):
    """Enhanced token response with refresh token."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

class RefreshTokenRequest(BaseModel):
    """Request to refresh access token."""
    refresh_token: str

class LoginRequest(BaseModel):
    """Schema for user login request."""
    email: EmailStr
    password: str


class ApplicationProfile(BaseModel):
    """Details a prospective member submits for review."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    location: Optional[str] = None
    how_did_you_hear: Optional[str] = None
    how_did_you_hear_other: Optional[str] = None
    referred_by: Optional[str] = None
    referral_notes: Optional[str] = None

class UserCreate(ApplicationProfile):
    email: EmailStr
    password: str

class UserOut(BaseModel):
    id: UUID
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: RoleEnum
    status: AccountStatus
    membership_tier: MembershipTier

    class Config:
        from_attributes = True


class PaginationMetadata(BaseModel):
    total: int
    page: int
    per_page: int
    total_pages: int
    has_next: bool
    has_prev: bool

class PaginatedResponse(BaseModel, Generic[T]):
    items: List[T]
    pagination: PaginationMetadata


# Events

class EventBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = None
    start_at: datetime
    end_at: Optional[datetime] = None
    capacity: Optional[int] = Field(0, ge=0)
    waitlist_enabled: bool = False
    waitlist_limit: Optional[int] = Field(None, ge=1)
    recurrence_rule: Optional[str] = None
    recurrence_timezone: Optional[str] = None
    recurrence_exdates: Optional[List[str]] = None

class EventCreate(EventBase):
    @model_validator(mode="after")
    def check_window(self):
        if self.end_at is None:
            self.end_at = self.start_at
        if self.end_at < self.start_at:
            raise ValueError("end_at must not be before start_at")
        return self

class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    capacity: Optional[int] = Field(None, ge=0)
    waitlist_enabled: Optional[bool] = None
    waitlist_limit: Optional[int] = Field(None, ge=1)
    recurrence_rule: Optional[str] = None
    recurrence_timezone: Optional[str] = None
    recurrence_exdates: Optional[List[str]] = None

class EventOut(BaseModel):
    id: UUID
    title: str
    description: Optional[str]
    location: Optional[str]
    start_at: datetime
    end_at: datetime
    capacity: Optional[int]
    waitlist_enabled: bool
    waitlist_limit: Optional[int] = None
    attending_count: int = 0
    recurrence_rule: Optional[str] = None
    recurrence_timezone: Optional[str] = None
    recurrence_exdates: Optional[List[str]] = None
    is_free: bool = True
    requires_payment: bool = False
    adult_price: int = 0
    currency: str = "USD"
    created_by: UUID
    available_spots: Optional[int] = None

    class Config:
        from_attributes = True

class EventPricingUpdate(BaseModel):
    is_free: bool = True
    requires_payment: bool = False
    adult_price: int = Field(0, ge=0)
    age_group_prices: Optional[Dict[AgeGroup, int]] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    payment_deadline: Optional[datetime] = None
    refund_allowed: bool = False
    refund_deadline: Optional[datetime] = None
    refund_fee_percentage: int = Field(0, ge=0, le=100)

class EventPricingOut(BaseModel):
    event_id: UUID
    is_free: bool
    requires_payment: bool
    adult_price: int
    age_group_prices: Dict[AgeGroup, int]
    currency: str
    payment_deadline: Optional[datetime] = None
    refund_allowed: bool
    refund_deadline: Optional[datetime] = None
    refund_fee_percentage: int

class OccurrenceOut(BaseModel):
    start: datetime
    end: datetime

    class Config:
        from_attributes = True

class EventOccurrencesOut(BaseModel):
    event_id: UUID
    occurrences: List[OccurrenceOut]

class CalendarEntry(BaseModel):
    event_id: UUID
    title: str
    location: Optional[str] = None
    start: datetime
    end: datetime


# Attendees

class AttendeeCreate(BaseModel):
    attendee_type: AttendeeType = AttendeeType.primary
    relationship: Relationship = Relationship.self
    name: Optional[str] = Field(None, max_length=100)
    age_group: Optional[AgeGroup] = None
    rsvp_status: AttendeeStatus = AttendeeStatus.going
    family_member_id: Optional[UUID] = None

class AttendeeBulkCreate(BaseModel):
    attendees: List[AttendeeCreate] = Field(..., min_length=1)

class AttendeeUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    age_group: Optional[AgeGroup] = None
    relationship: Optional[Relationship] = None
    rsvp_status: Optional[AttendeeStatus] = None

class AttendeeOut(BaseModel):
    id: UUID
    event_id: UUID
    user_id: UUID
    attendee_type: AttendeeType
    relationship: Relationship = Field(validation_alias=AliasChoices("relationship", "relationship_type"))
    name: str
    age_group: Optional[AgeGroup] = None
    rsvp_status: AttendeeStatus
    family_member_id: Optional[UUID] = None
    waitlist_position: Optional[int] = None
    promoted_from_waitlist: bool = False
    promotion_number: Optional[int] = None
    payment_status: Optional[PaymentStatus] = None
    price: Optional[int] = None

    class Config:
        from_attributes = True

class AttendeeCountsOut(BaseModel):
    going: int
    not_going: int
    pending: int
    waitlisted: int
    going_primaries: int
    waitlisted_primaries: int
    total_going: int
    going_by_age_group: Dict[str, int]

    class Config:
        from_attributes = True

class AttendeeCountOut(BaseModel):
    event_id: UUID
    attending_count: int


# Waitlist

class WaitlistPositionsOut(BaseModel):
    positions: Dict[str, int]
    my_position: Optional[int] = None
    waitlist_count: int

class PromotedUserOut(BaseModel):
    user_id: UUID
    attendee_id: UUID
    name: str
    promoted_from_position: int
    promotion_number: int
    message: str

class PromotionResultOut(BaseModel):
    success: bool
    promotions_count: int
    promoted_users: List[PromotedUserOut]
    errors: List[str]

    class Config:
        from_attributes = True

class WaitlistRecalculateOut(BaseModel):
    event_id: UUID
    updated: int


# Account approval

class ApprovalOut(BaseModel):
    id: UUID
    user_id: UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    location: Optional[str] = None
    how_did_you_hear: Optional[str] = None
    how_did_you_hear_other: Optional[str] = None
    referred_by: Optional[str] = None
    referral_notes: Optional[str] = None
    status: AccountStatus
    awaiting_response_from: Optional[SenderRole] = None
    unread_admin: int
    unread_user: int
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    last_message_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ApprovalMessageCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)

class ApprovalMessageOut(BaseModel):
    id: UUID
    approval_id: UUID
    user_id: UUID
    sender_role: SenderRole
    sender_name: Optional[str] = None
    message: str
    read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1)

class ReapplyEligibilityOut(BaseModel):
    can_reapply: bool
    reapply_date: Optional[datetime] = None

    class Config:
        from_attributes = True


# Family members

class FamilyMemberCreate(BaseModel):
    name: str
    age_group: Optional[AgeGroup] = None
    birth_date: Optional[date] = None
    is_default_member: bool = False

class FamilyMemberUpdate(BaseModel):
    name: Optional[str] = None
    age_group: Optional[AgeGroup] = None
    birth_date: Optional[date] = None
    is_default_member: Optional[bool] = None

class FamilyMemberOut(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    age_group: AgeGroup
    is_default_member: bool

    class Config:
        from_attributes = True


# Payments

class BreakdownItemOut(BaseModel):
    attendee_id: UUID
    attendee_name: str
    age_group: Optional[str] = None
    price: int
    quantity: int
    subtotal: int

    class Config:
        from_attributes = True

class PaymentSummaryOut(BaseModel):
    total_amount: int
    currency: str
    breakdown: List[BreakdownItemOut]
    status: PaymentStatus
    can_refund: bool
    refund_deadline: Optional[datetime] = None

    class Config:
        from_attributes = True

class PaymentTransactionCreate(BaseModel):
    method: PaymentMethod = PaymentMethod.card

class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus

class RefundRequest(BaseModel):
    reason: str = Field(..., min_length=1)

class PaymentTransactionOut(BaseModel):
    id: UUID
    event_id: UUID
    user_id: UUID
    amount: int
    currency: str
    status: PaymentStatus
    method: PaymentMethod
    refund_status: RefundStatus
    refunded_amount: int
    refund_reason: Optional[str] = None
    breakdown: List[Dict[str, Any]]
    paid_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class PaymentAnalyticsOut(BaseModel):
    total_revenue: int
    total_transactions: int
    paid_transactions: int
    refunded_transactions: int
    average_transaction_value: float


# Notifications

class NotificationOut(BaseModel):
    id: UUID
    type: str
    title: str
    message: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
