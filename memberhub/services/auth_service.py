"""Authentication service for user management and JWT token operations."""
import uuid
from fastapi import HTTPException, status
from memberhub.schemas import UserCreate, LoginRequest
from memberhub.db.repositories.users import (
    create_user as db_create_user,
    get_user as db_get_user,
    get_user_by_email as db_get_user_by_email,
)
from memberhub.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    revoke_token,
    validate_password,
    verify_password,
)
from memberhub.core.logging import logger
from memberhub.db.models.user import AccountStatus
from memberhub.services.base import BaseService
from memberhub.services.approval_service import ApprovalService


def _claims(user) -> dict:
    return {"sub": str(user.id), "user_id": str(user.id), "role": user.role.value}


class AuthService(BaseService):
    """
    Service layer for authentication operations.

    Handles user registration, login, token refresh, and logout operations.
    """

    async def register(self, payload: UserCreate):
        """
        Register a new user with password validation.

        The account starts ``pending`` with an approval request holding the
        submitted profile; it can log in and browse but not RSVP until an
        administrator approves it.

        Raises:
            HTTPException: If password is weak or email already exists
        """
        try:
            validate_password(payload.password)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        existing = await db_get_user_by_email(self.session, payload.email)
        if existing:
            raise HTTPException(status_code=400, detail="Email already registered")

        user = await db_create_user(self.session, payload)
        await ApprovalService(self.session, self.outbox).create_request(user, payload)
        await self.commit()
        logger.info(f"Registered user {user.id}; approval pending")
        return user

    async def login(self, form_data: LoginRequest):
        """
        Authenticate user and generate access and refresh tokens.

        Raises:
            HTTPException: If credentials are invalid
        """
        user = await db_get_user_by_email(self.session, form_data.email)
        if not user or not verify_password(form_data.password, user.hashed_password):
            raise HTTPException(status_code=401, detail="Incorrect credentials")

        if user.status != AccountStatus.approved:
            logger.info(f"User {user.id} logged in while {user.status.value}")
        token_data = _claims(user)
        return {
            "access_token": create_access_token(token_data),
            "refresh_token": create_refresh_token(token_data),
            "token_type": "bearer",
        }

    async def refresh_access_token(self, refresh_token: str):
        """
        Issue a new access token for the holder of a valid refresh token.

        The role claim is re-read from the account, so promotions and
        demotions apply from the next refresh.

        Raises:
            HTTPException: If the token is invalid, not a refresh token, or
                its account no longer exists
        """
        try:
            token_data = decode_token(refresh_token)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid refresh token"
            )

        if token_data.get("type") != "refresh":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token type"
            )

        try:
            user_id = uuid.UUID(str(token_data.get("user_id") or token_data.get("sub")))
        except ValueError:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
        user = await db_get_user(self.session, user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account no longer exists")

        return {
            "access_token": create_access_token(_claims(user)),
            "token_type": "bearer"
        }

    async def logout(self, token: str):
        """Revoke user's access token."""
        await revoke_token(token)
