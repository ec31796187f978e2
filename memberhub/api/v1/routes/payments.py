"""Event payments: per-household summaries, transactions and refunds."""
from fastapi import APIRouter, Depends, status
from memberhub.schemas import (
    PaymentSummaryOut, PaymentTransactionCreate, PaymentTransactionOut,
    PaymentStatusUpdate, RefundRequest, PaymentAnalyticsOut,
)
from memberhub.db.session import get_session
from memberhub.services.payment_service import PaymentService
from memberhub.auth import get_current_user, role_required, approved_member_required
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

router = APIRouter(prefix="/payments", tags=["payments"])


def get_payment_service(session: AsyncSession = Depends(get_session)) -> PaymentService:
    """
    Dependency to get payment service instance.

    Args:
        session: Database session

    Returns:
        PaymentService instance
    """
    return PaymentService(session)


@router.get("/me", response_model=List[PaymentTransactionOut])
async def my_transactions(
    user=Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return await service.get_user_payment_transactions(user.id)


@router.get("/events/{event_id}/summary", response_model=PaymentSummaryOut)
async def payment_summary(
    event_id: UUID,
    user=Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """What the caller's household owes for this event, itemised by attendee."""
    return await service.get_payment_summary(event_id, user)


@router.post("/events/{event_id}/transactions", response_model=PaymentTransactionOut, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    event_id: UUID,
    payload: PaymentTransactionCreate,
    user=Depends(approved_member_required),
    service: PaymentService = Depends(get_payment_service),
):
    """
    Open a transaction for everything the caller's household owes.

    Args:
        event_id: Event being paid for
        payload: Payment method
        user: Current approved member
        service: Payment service instance

    Returns:
        Created pending transaction

    Raises:
        HTTPException: 409 if a payment is already open
        PaymentError: The event charges nothing or nobody is going
    """
    return await service.create_payment_transaction(event_id, user, payload.method)


@router.get("/events/{event_id}/transactions", response_model=List[PaymentTransactionOut])
async def event_transactions(
    event_id: UUID,
    user=Depends(role_required("admin")),
    service: PaymentService = Depends(get_payment_service),
):
    return await service.get_event_payment_transactions(event_id)


@router.get("/events/{event_id}/transactions/me", response_model=List[PaymentTransactionOut])
async def my_event_transactions(
    event_id: UUID,
    user=Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return await service.get_event_payments_by_user(event_id, user.id)


@router.get("/events/{event_id}/analytics", response_model=PaymentAnalyticsOut)
async def event_analytics(
    event_id: UUID,
    user=Depends(role_required("admin")),
    service: PaymentService = Depends(get_payment_service),
):
    """Revenue, refunds and per-method totals for one event (admin only)."""
    return await service.get_event_payment_analytics(event_id)


@router.patch("/transactions/{transaction_id}", response_model=PaymentTransactionOut)
async def update_transaction_status(
    transaction_id: UUID,
    payload: PaymentStatusUpdate,
    user=Depends(role_required("admin")),
    service: PaymentService = Depends(get_payment_service),
):
    """Move a transaction along its lifecycle; disallowed moves are rejected."""
    return await service.update_payment_status(transaction_id, payload.status)


@router.post("/transactions/{transaction_id}/refund", response_model=PaymentTransactionOut)
async def refund_transaction(
    transaction_id: UUID,
    payload: RefundRequest,
    user=Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """
    Refund a paid transaction, less the event's refund fee.

    The fee is withheld once: a transaction is closed as ``refunded`` as soon
    as the refundable amount has been returned.

    Args:
        transaction_id: Transaction to refund
        payload: Reason for the refund
        user: Current user; must own the transaction or be an admin
        service: Payment service instance

    Returns:
        Updated transaction

    Raises:
        HTTPException: 403 for someone else's transaction
        PaymentError: Refunds are closed or the transaction is not paid
    """
    return await service.refund_transaction(transaction_id, user, payload.reason)
