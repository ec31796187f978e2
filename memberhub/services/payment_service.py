from datetime import datetime
from typing import List, Optional
from fastapi import HTTPException
from memberhub.core.errors import PaymentError
from memberhub.core.logging import logger
from memberhub.db.models.attendee import Attendee
from memberhub.db.models.payment import PaymentTransaction, PaymentStatus, PaymentMethod, RefundStatus
from memberhub.db.models.user import User
from memberhub.db.repositories.attendees import list_household
from memberhub.db.repositories.events import get_event_or_404
from memberhub.db.repositories.payments import (
    get_transaction_or_404,
    list_event_transactions,
    list_user_transactions,
)
from memberhub.db.session import utcnow
from memberhub.domain.payments import (
    PaymentSummary,
    Pricing,
    calculate_payment_summary,
    calculate_refund_amount,
    check_transition,
    payment_analytics,
    refund_cap,
)
from memberhub.services.base import BaseService

OPEN_TRANSACTION_STATUSES = (PaymentStatus.pending, PaymentStatus.paid)


class PaymentService(BaseService):
    """
    Payment records for paid events.

    Transactions are bookkeeping only; nothing is sent to a payment processor.
    """

    async def get_payment_summary(self, event_id, user: User) -> PaymentSummary:
        """What the user's going household owes, reflecting any open transaction."""
        event = await get_event_or_404(self.session, event_id)
        household = await list_household(self.session, event.id, user.id)
        summary = calculate_payment_summary(household, Pricing.from_event(event))
        if summary.breakdown:
            for tx in await list_user_transactions(self.session, user.id, event.id):
                if tx.status in OPEN_TRANSACTION_STATUSES:
                    summary.status = tx.status
                    break
        return summary

    async def create_payment_transaction(self, event_id, user: User, method: PaymentMethod = PaymentMethod.card) -> PaymentTransaction:
        event = await get_event_or_404(self.session, event_id, lock=True)
        pricing = Pricing.from_event(event)
        if not pricing.charges:
            raise PaymentError("This event does not require payment")

        for tx in await list_user_transactions(self.session, user.id, event.id):
            if tx.status in OPEN_TRANSACTION_STATUSES:
                raise HTTPException(status_code=409, detail="A payment for this event is already in progress or complete")

        household = await list_household(self.session, event.id, user.id)
        summary = calculate_payment_summary(household, pricing)
        if not summary.breakdown:
            raise PaymentError("No going attendees to pay for")

        tx = PaymentTransaction(
            event_id=event.id,
            user_id=user.id,
            amount=summary.total_amount,
            currency=summary.currency,
            status=PaymentStatus.pending,
            method=method,
            refund_status=RefundStatus.none,
            refunded_amount=0,
            breakdown=[item.to_dict() for item in summary.breakdown],
        )
        self.session.add(tx)
        await self.session.flush()
        covered = {item.attendee_id for item in summary.breakdown}
        for attendee in household:
            if str(attendee.id) in covered:
                attendee.payment_status = PaymentStatus.pending
                attendee.payment_transaction_id = tx.id
        self.emit("payment.created", self._payload(tx))
        await self.commit()
        logger.info(f"Payment transaction {tx.id} created for event {event.id}: {tx.amount} {tx.currency}")
        return tx

    @staticmethod
    def _payload(tx: PaymentTransaction) -> dict:
        return {
            "transaction_id": str(tx.id),
            "event_id": str(tx.event_id),
            "user_id": str(tx.user_id),
            "amount": tx.amount,
            "currency": tx.currency,
            "status": tx.status.value,
        }

    async def _covered_attendees(self, tx: PaymentTransaction) -> List[Attendee]:
        ids = {item["attendee_id"] for item in tx.breakdown or []}
        household = await list_household(self.session, tx.event_id, tx.user_id)
        return [a for a in household if str(a.id) in ids]

    async def update_payment_status(self, transaction_id, status: PaymentStatus) -> PaymentTransaction:
        tx = await get_transaction_or_404(self.session, transaction_id, lock=True)
        check_transition(tx.status, status)
        now = utcnow()
        prices = {item["attendee_id"]: item["price"] for item in tx.breakdown or []}

        tx.status = status
        if status == PaymentStatus.paid:
            tx.paid_at = now
        elif status == PaymentStatus.refunded:
            tx.refund_status = RefundStatus.full
            tx.refunded_amount = tx.amount
            tx.refunded_at = now

        for attendee in await self._covered_attendees(tx):
            attendee.payment_status = status
            if status == PaymentStatus.paid:
                attendee.price = prices.get(str(attendee.id))

        self.emit("payment.updated", self._payload(tx))
        await self.commit()
        logger.info(f"Payment transaction {tx.id} marked {status.value}")
        return tx

    async def refund_transaction(self, transaction_id, user: User, reason: str, now: Optional[datetime] = None) -> PaymentTransaction:
        """Refund a paid transaction under the event's refund policy, less the refund fee."""
        now = now or utcnow()
        tx = await get_transaction_or_404(self.session, transaction_id, lock=True)
        if tx.user_id != user.id and not user.is_admin:
            raise HTTPException(status_code=403, detail="Forbidden")
        event = await get_event_or_404(self.session, tx.event_id)
        pricing = Pricing.from_event(event)
        amount = calculate_refund_amount(tx, pricing, now)
        if amount <= 0:
            raise PaymentError("Nothing left to refund")

        tx.refunded_amount = (tx.refunded_amount or 0) + amount
        full = tx.refunded_amount >= refund_cap(tx.amount, pricing.refund_fee_percentage)
        tx.refund_status = RefundStatus.full if full else RefundStatus.partial
        tx.refund_reason = reason
        tx.refunded_at = now
        if full:
            tx.status = PaymentStatus.refunded
            for attendee in await self._covered_attendees(tx):
                attendee.payment_status = PaymentStatus.refunded

        self.emit("payment.updated", self._payload(tx))
        await self.commit()
        logger.info(f"Refunded {amount} {tx.currency} on transaction {tx.id}")
        return tx

    async def get_event_payment_transactions(self, event_id) -> List[PaymentTransaction]:
        await get_event_or_404(self.session, event_id)
        return await list_event_transactions(self.session, event_id)

    async def get_user_payment_transactions(self, user_id) -> List[PaymentTransaction]:
        return await list_user_transactions(self.session, user_id)

    async def get_event_payments_by_user(self, event_id, user_id) -> List[PaymentTransaction]:
        return await list_user_transactions(self.session, user_id, event_id)

    async def get_event_payment_analytics(self, event_id) -> dict:
        return payment_analytics(await self.get_event_payment_transactions(event_id))
