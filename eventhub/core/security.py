"""
Caller identity helpers: password hashing, JWT access/refresh tokens and revocation.

Authentication itself is an outer concern; the rest of the service only consumes the
identity these tokens carry.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict
from jose import jwt, JWTError
from passlib.context import CryptContext
from eventhub.core.config import settings
from eventhub.cache.redis_client import cache

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{}|;:,.<>?"


def validate_password(password: str) -> None:
    """
    Validate password strength.

    Args:
        password: The password to validate

    Raises:
        ValueError: If password doesn't meet strength requirements
    """
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters long")
    checks = (
        (str.isupper, "Password must contain at least one uppercase letter"),
        (str.islower, "Password must contain at least one lowercase letter"),
        (str.isdigit, "Password must contain at least one digit"),
        (lambda c: c in SPECIAL_CHARACTERS, "Password must contain at least one special character"),
    )
    for predicate, message in checks:
        if not any(predicate(c) for c in password):
            raise ValueError(message)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a password against a hash."""
    return pwd_context.verify(plain, hashed)


def hash_password(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def token_claims(user) -> Dict:
    """Claims shared by access and refresh tokens for a user profile."""
    role = getattr(user.role, "value", user.role)
    return {"sub": str(user.id), "user_id": str(user.id), "role": role}


def _encode(data: Dict, token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta, "type": token_type})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims to encode in the token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(data, "access", expires_delta)


def create_refresh_token(data: Dict) -> str:
    """Create a JWT refresh token with the longer refresh lifetime."""
    return _encode(data, "refresh", timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str) -> Dict:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token to decode

    Returns:
        Decoded token claims

    Raises:
        ValueError: If token is invalid, expired or has no subject
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
    Add token to revocation list in Redis.

    Args:
        token: Token to revoke
        expiry: Optional TTL in seconds (if not provided, calculated from token exp)

    Returns:
        True if the token was recorded as revoked
    """
    if expiry is None:
        try:
            payload = decode_token(token)
        except ValueError:
            return False
        exp = payload.get("exp")
        if not exp:
            return False
        expiry = exp - int(datetime.now(timezone.utc).timestamp())
        if expiry <= 0:
            return False
    return await cache.set(f"revoked_token:{token}", True, expire=expiry)


async def is_token_revoked(token: str) -> bool:
    """Check if token is in revocation list."""
    return await cache.exists(f"revoked_token:{token}")
