from typing import List
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from memberhub.db.models.family import FamilyMember


async def list_family_members(db: AsyncSession, user_id) -> List[FamilyMember]:
    q = select(FamilyMember).where(FamilyMember.user_id == user_id).order_by(FamilyMember.created_at.asc())
    res = await db.execute(q)
    return list(res.scalars().all())


async def get_family_member_or_404(db: AsyncSession, member_id, user_id) -> FamilyMember:
    """A family member is only visible to the user who saved it."""
    q = select(FamilyMember).where(FamilyMember.id == member_id, FamilyMember.user_id == user_id)
    res = await db.execute(q)
    member = res.scalars().first()
    if not member:
        raise HTTPException(status_code=404, detail="Family member not found")
    return member
