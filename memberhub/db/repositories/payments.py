from typing import List
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from memberhub.db.models.payment import PaymentTransaction


async def get_transaction_or_404(db: AsyncSession, transaction_id, lock: bool = False) -> PaymentTransaction:
    q = select(PaymentTransaction).where(PaymentTransaction.id == transaction_id)
    if lock:
        q = q.with_for_update()
    res = await db.execute(q)
    tx = res.scalars().first()
    if not tx:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return tx


async def list_event_transactions(db: AsyncSession, event_id) -> List[PaymentTransaction]:
    q = (
        select(PaymentTransaction)
        .where(PaymentTransaction.event_id == event_id)
        .order_by(PaymentTransaction.created_at.desc())
    )
    res = await db.execute(q)
    return list(res.scalars().all())


async def list_user_transactions(db: AsyncSession, user_id, event_id=None) -> List[PaymentTransaction]:
    q = select(PaymentTransaction).where(PaymentTransaction.user_id == user_id)
    if event_id is not None:
        q = q.where(PaymentTransaction.event_id == event_id)
    q = q.order_by(PaymentTransaction.created_at.desc())
    res = await db.execute(q)
    return list(res.scalars().all())
