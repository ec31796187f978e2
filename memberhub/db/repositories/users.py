from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from memberhub.db.models.user import User, RoleEnum, AccountStatus
from memberhub.schemas import UserCreate
from memberhub.core.security import hash_password


async def create_user(db: AsyncSession, user_in: UserCreate, status: AccountStatus = AccountStatus.pending) -> User:
    """
    Create a new user with hashed password.

    Args:
        db: Database session
        user_in: User registration data
        status: Initial account status

    Returns:
        Created User object (flushed, not committed)
    """
    user = User(
        email=user_in.email,
        hashed_password=hash_password(user_in.password),
        first_name=user_in.first_name,
        last_name=user_in.last_name,
        phone_number=user_in.phone_number,
        status=status,
    )
    db.add(user)
    await db.flush()
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    q = select(User).where(User.email == email)
    res = await db.execute(q)
    return res.scalars().first()


async def get_user(db: AsyncSession, user_id) -> Optional[User]:
    q = select(User).where(User.id == user_id)
    res = await db.execute(q)
    return res.scalars().first()


async def list_admin_ids(db: AsyncSession) -> List:
    q = select(User.id).where(User.role == RoleEnum.admin)
    res = await db.execute(q)
    return list(res.scalars().all())
