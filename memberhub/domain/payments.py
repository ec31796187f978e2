"""
Event pricing, payment summaries and refund arithmetic.

All amounts are integer cents.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from memberhub.core.errors import PaymentError
from memberhub.db.models.attendee import AgeGroup, AttendeeStatus
from memberhub.db.models.payment import PaymentStatus
from memberhub.domain.recurrence import as_utc

# Share of the adult price charged per age group when an event is priced
# from the adult price alone
DEFAULT_AGE_GROUP_RATIOS = {
    AgeGroup.infant: 0.0,
    AgeGroup.toddler: 0.5,
    AgeGroup.child: 0.7,
    AgeGroup.youth: 0.8,
    AgeGroup.adult: 1.0,
}

ALLOWED_TRANSITIONS = {
    PaymentStatus.unpaid: {PaymentStatus.pending},
    PaymentStatus.pending: {PaymentStatus.paid, PaymentStatus.failed},
    PaymentStatus.failed: {PaymentStatus.pending},
    PaymentStatus.paid: {PaymentStatus.refunded},
    PaymentStatus.refunded: set(),
}


@dataclass
class Pricing:
    is_free: bool = True
    requires_payment: bool = False
    adult_price: int = 0
    age_group_prices: Dict[AgeGroup, int] = field(default_factory=dict)
    currency: str = "USD"
    refund_allowed: bool = False
    refund_deadline: Optional[datetime] = None
    refund_fee_percentage: int = 0

    @property
    def charges(self) -> bool:
        return self.requires_payment and not self.is_free

    @classmethod
    def from_event(cls, event) -> "Pricing":
        return cls(
            is_free=bool(event.is_free),
            requires_payment=bool(event.requires_payment),
            adult_price=event.adult_price or 0,
            age_group_prices=event.price_map(),
            currency=event.currency,
            refund_allowed=bool(event.refund_allowed),
            refund_deadline=event.refund_deadline,
            refund_fee_percentage=event.refund_fee_percentage or 0,
        )


@dataclass
class BreakdownItem:
    attendee_id: str
    attendee_name: str
    age_group: Optional[str]
    price: int
    quantity: int = 1

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "attendee_id": self.attendee_id,
            "attendee_name": self.attendee_name,
            "age_group": self.age_group,
            "price": self.price,
            "quantity": self.quantity,
            "subtotal": self.subtotal,
        }


@dataclass
class PaymentSummary:
    total_amount: int
    currency: str
    breakdown: List[BreakdownItem]
    status: PaymentStatus
    can_refund: bool
    refund_deadline: Optional[datetime] = None


def default_age_group_prices(adult_price: int, overrides: Optional[Dict[AgeGroup, int]] = None) -> Dict[AgeGroup, int]:
    prices = {group: round(adult_price * ratio) for group, ratio in DEFAULT_AGE_GROUP_RATIOS.items()}
    for group, price in (overrides or {}).items():
        prices[AgeGroup(group)] = price
    return prices


def price_for_age_group(age_group, pricing: Pricing) -> int:
    if not pricing.charges:
        return 0
    if age_group is not None:
        price = pricing.age_group_prices.get(AgeGroup(age_group))
        if price is not None:
            return price
    return pricing.adult_price


def calculate_payment_summary(attendees: Iterable, pricing: Pricing) -> PaymentSummary:
    """Price every ``going`` attendee; free events are settled with nothing to pay."""
    if not pricing.charges:
        return PaymentSummary(
            total_amount=0,
            currency=pricing.currency,
            breakdown=[],
            status=PaymentStatus.paid,
            can_refund=False,
        )

    breakdown = [
        BreakdownItem(
            attendee_id=str(a.id),
            attendee_name=a.name,
            age_group=getattr(a.age_group, "value", a.age_group),
            price=price_for_age_group(a.age_group, pricing),
        )
        for a in attendees
        if a.rsvp_status == AttendeeStatus.going
    ]
    return PaymentSummary(
        total_amount=sum(item.subtotal for item in breakdown),
        currency=pricing.currency,
        breakdown=breakdown,
        status=PaymentStatus.unpaid,
        can_refund=pricing.refund_allowed,
        refund_deadline=pricing.refund_deadline,
    )


def check_transition(current: PaymentStatus, new: PaymentStatus) -> None:
    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise PaymentError(f"Cannot change payment status from {current.value} to {new.value}")


def refund_cap(amount: int, fee_percentage: int) -> int:
    """Most a transaction can ever return; the fee is kept on the amount paid."""
    return amount * (100 - (fee_percentage or 0)) // 100


def calculate_refund_amount(transaction, pricing: Pricing, now: datetime) -> int:
    """
    Amount still owed back to the payer, net of the refund fee.

    The fee is charged once on the amount paid, so repeated refunds never
    return more than ``refund_cap`` in total.

    Raises:
        PaymentError: Refunds are disabled, the deadline has passed, or the
            transaction was never paid
    """
    if transaction.status != PaymentStatus.paid:
        raise PaymentError("Only paid transactions can be refunded")
    if not pricing.refund_allowed:
        raise PaymentError("Refunds are not allowed for this event")
    if pricing.refund_deadline is not None and as_utc(now) > as_utc(pricing.refund_deadline):
        raise PaymentError("The refund deadline has passed")

    cap = refund_cap(transaction.amount, pricing.refund_fee_percentage)
    return max(0, cap - (transaction.refunded_amount or 0))


def payment_analytics(transactions: Iterable) -> dict:
    transactions = list(transactions)
    paid = [t for t in transactions if t.status == PaymentStatus.paid]
    refunded = [t for t in transactions if t.status == PaymentStatus.refunded]
    revenue = sum(t.amount for t in paid)
    return {
        "total_revenue": revenue,
        "total_transactions": len(transactions),
        "paid_transactions": len(paid),
        "refunded_transactions": len(refunded),
        "average_transaction_value": revenue / len(transactions) if transactions else 0,
    }
