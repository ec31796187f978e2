"""
JWT access/refresh tokens, password hashing and token revocation.
"""
import time
from datetime import datetime, timedelta
from typing import Optional, Dict
from jose import jwt, JWTError
from passlib.context import CryptContext
from memberhub.core.config import settings
from memberhub.cache.redis_client import cache

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{}|;:,.<>?"
REVOKED_PREFIX = "revoked_token"


def validate_password(password: str) -> None:
    """
    Validate password strength.

    Raises:
        ValueError: If password doesn't meet strength requirements
    """
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters long")

    if not any(c.isupper() for c in password):
        raise ValueError("Password must contain at least one uppercase letter")

    if not any(c.islower() for c in password):
        raise ValueError("Password must contain at least one lowercase letter")

    if not any(c.isdigit() for c in password):
        raise ValueError("Password must contain at least one digit")

    if not any(c in SPECIAL_CHARACTERS for c in password):
        raise ValueError("Password must contain at least one special character")


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a password against a hash."""
    return pwd_context.verify(plain, hashed)


def hash_password(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def _encode(data: Dict, expires_delta: timedelta, token_type: str) -> str:
    to_encode = data.copy()
    to_encode.update({"exp": datetime.utcnow() + expires_delta, "type": token_type})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims to encode; must carry ``sub`` (the user id)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(data, expires_delta, "access")


def create_refresh_token(data: Dict) -> str:
    """Create a JWT refresh token with the longer refresh lifetime."""
    return _encode(data, timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS), "refresh")


def decode_token(token: str) -> Dict:
    """
    Decode and validate a JWT token.

    Raises:
        ValueError: If token is invalid or expired
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise ValueError("Token has expired")
    except JWTError as e:
        raise ValueError(f"Invalid token: {str(e)}")

    if "sub" not in payload:
        raise ValueError("Invalid token payload: missing 'sub' field")

    return payload


async def revoke_token(token: str, expiry: Optional[int] = None) -> bool:
    """
    Add token to the revocation list in Redis.

    The TTL defaults to the token's remaining lifetime so the list never
    outgrows the set of still-valid tokens.
    """
    if expiry is None:
        try:
            payload = decode_token(token)
        except ValueError:
            return False
        exp = payload.get("exp")
        if not exp:
            return False
        expiry = exp - int(time.time())

    if expiry <= 0:
        return False
    return await cache.set(f"{REVOKED_PREFIX}:{token}", True, expire=expiry)


async def is_token_revoked(token: str) -> bool:
    """Check if token is in revocation list."""
    return await cache.exists(f"{REVOKED_PREFIX}:{token}")
