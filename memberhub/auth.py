from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from memberhub.db.session import get_session
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import uuid
from memberhub.db.models.user import User, RoleEnum
from memberhub.core.security import decode_token, is_token_revoked

# HTTPBearer shows a simple "Authorize" button in Swagger UI for pasting a JWT
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: AsyncSession = Depends(get_session)
) -> User:
    """
    Get current user from JWT token with revocation check.

    Raises:
        HTTPException: If token is invalid, revoked or names an unknown user
    """
    token = credentials.credentials

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if await is_token_revoked(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_token(token)
    except ValueError:
        raise credentials_exception

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id: Optional[str] = payload.get("sub") or payload.get("user_id")
    try:
        user_uuid = uuid.UUID(str(user_id))
    except ValueError:
        raise credentials_exception

    q = await session.execute(select(User).where(User.id == user_uuid))
    user = q.scalars().first()
    if not user:
        raise credentials_exception
    return user


def role_required(required_role: str):
    """
    Dependency to require specific role for endpoint access.

    Admins pass every role check.
    """
    async def role_checker(user: User = Depends(get_current_user)) -> User:
        if user.role.value != required_role and user.role != RoleEnum.admin:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user
    return role_checker


async def approved_member_required(user: User = Depends(get_current_user)) -> User:
    """Only approved members (and admins) may RSVP or pay."""
    if not (user.is_approved or user.is_admin):
        raise HTTPException(
            status_code=403,
            detail=f"Your account is {user.status.value}; it must be approved first",
        )
    return user
