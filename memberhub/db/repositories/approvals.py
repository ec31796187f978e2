from typing import List, Optional
from fastapi import HTTPException
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from memberhub.db.models.approval import AccountApproval, ApprovalMessage, SenderRole
from memberhub.db.models.user import AccountStatus


async def get_approval_by_user(db: AsyncSession, user_id) -> Optional[AccountApproval]:
    q = select(AccountApproval).where(AccountApproval.user_id == user_id)
    res = await db.execute(q)
    return res.scalars().first()


async def get_approval_or_404(db: AsyncSession, approval_id, lock: bool = False) -> AccountApproval:
    q = select(AccountApproval).where(AccountApproval.id == approval_id)
    if lock:
        q = q.with_for_update()
    res = await db.execute(q)
    approval = res.scalars().first()
    if not approval:
        raise HTTPException(status_code=404, detail="Approval request not found")
    return approval


async def list_approvals(db: AsyncSession, status: Optional[AccountStatus] = None) -> List[AccountApproval]:
    q = select(AccountApproval)
    if status:
        q = q.where(AccountApproval.status == status)
    q = q.order_by(AccountApproval.submitted_at.desc())
    res = await db.execute(q)
    return list(res.scalars().all())


async def list_messages(db: AsyncSession, approval_id) -> List[ApprovalMessage]:
    q = (
        select(ApprovalMessage)
        .where(ApprovalMessage.approval_id == approval_id)
        .order_by(ApprovalMessage.created_at.asc())
    )
    res = await db.execute(q)
    return list(res.scalars().all())


async def mark_messages_read(db: AsyncSession, approval_id, sender_role: SenderRole) -> None:
    await db.execute(
        update(ApprovalMessage)
        .where(
            ApprovalMessage.approval_id == approval_id,
            ApprovalMessage.sender_role == sender_role,
            ApprovalMessage.read.is_(False),
        )
        .values(read=True)
        .execution_options(synchronize_session="fetch")
    )
