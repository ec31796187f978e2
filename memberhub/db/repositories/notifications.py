from typing import List
from fastapi import HTTPException
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from memberhub.db.models.notification import Notification


async def create_notification(db: AsyncSession, user_id, type: str, title: str, message: str = None, data: dict = None) -> Notification:
    n = Notification(user_id=user_id, type=type, title=title, message=message, data=data)
    db.add(n)
    await db.flush()
    return n


async def list_notifications(db: AsyncSession, user_id, unread_only: bool = False, limit: int = 50) -> List[Notification]:
    q = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        q = q.where(Notification.read.is_(False))
    q = q.order_by(Notification.created_at.desc()).limit(limit)
    res = await db.execute(q)
    return list(res.scalars().all())


async def get_notification_or_404(db: AsyncSession, notification_id, user_id) -> Notification:
    q = select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
    res = await db.execute(q)
    n = res.scalars().first()
    if not n:
        raise HTTPException(status_code=404, detail="Notification not found")
    return n


async def mark_all_read(db: AsyncSession, user_id) -> int:
    res = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session="fetch")
    )
    return res.rowcount or 0
