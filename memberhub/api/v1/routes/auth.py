"""Registration, login and token lifecycle."""
from fastapi import APIRouter, Depends, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from memberhub.schemas import UserCreate, UserOut, Token, TokenResponse, LoginRequest, RefreshTokenRequest
from memberhub.services.auth_service import AuthService
from memberhub.db.session import get_session
from memberhub.db.models.user import User
from memberhub.auth import get_current_user
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi import Limiter
from slowapi.util import get_remote_address

router = APIRouter(prefix="/auth", tags=["auth"])
limiter = Limiter(key_func=get_remote_address)
security = HTTPBearer()


def get_auth_service(session: AsyncSession = Depends(get_session)) -> AuthService:
    """
    Dependency to get auth service instance.

    Args:
        session: Database session

    Returns:
        AuthService instance
    """
    return AuthService(session)


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
@limiter.limit("3/minute")
async def register(
    request: Request,
    payload: UserCreate,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Register a member account.

    The account starts ``pending`` and an approval request is opened for
    the admins; RSVPs and payments stay closed until it is approved.

    Rate limit: 3 requests per minute
    """
    return await auth_service.register(payload)


@router.post("/login", response_model=TokenResponse)
@limiter.limit("5/minute")
async def login(
    request: Request,
    form_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Exchange credentials for an access/refresh token pair. Rate limit: 5/minute."""
    return await auth_service.login(form_data)


@router.post("/refresh", response_model=Token)
@limiter.limit("10/minute")
async def refresh_access_token(
    request: Request,
    payload: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Issue a new access token from a refresh token.

    Rate limit: 10 requests per minute

    Args:
        request: FastAPI request object (for rate limiting)
        payload: Refresh token
        auth_service: Authentication service instance

    Returns:
        New access token

    Raises:
        HTTPException: If the refresh token is invalid or expired
    """
    return await auth_service.refresh_access_token(payload.refresh_token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Revoke the presented access token until it would have expired anyway."""
    await auth_service.logout(credentials.credentials)
    return None


@router.get("/me", response_model=UserOut)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    return current_user
