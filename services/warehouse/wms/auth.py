"""
Actor identification and password hashing for the Warehouse service.

Login happens elsewhere; this service only verifies the bearer token that
names the acting worker. Requests without a token act as the system.
"""
import logging
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from .config import SECRET_KEY, ALGORITHM

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# Security scheme for JWT bearer tokens; a missing header is allowed
security = HTTPBearer(auto_error=False)


class Actor(BaseModel):
    """The identity a mutation is attributed to. user_id None means the system."""
    user_id: Optional[str] = None


SYSTEM_ACTOR = Actor()


def get_password_hash(password: str) -> str:
    """
    Hash a password for secure storage.

    Args:
        password: The plain text password to hash

    Returns:
        The hashed password
    """
    return pwd_context.hash(password)


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Actor:
    """
    FastAPI dependency resolving the acting worker from an optional JWT.

    Args:
        credentials: HTTP Authorization credentials (injected, may be absent)

    Returns:
        Actor carrying the token's "sub" claim, or the system actor

    Raises:
        HTTPException: 401 if a token is present but invalid
    """
    if credentials is None:
        return SYSTEM_ACTOR

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(credentials.credentials, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT validation error: {e}")
        raise credentials_exception

    user_id = payload.get("sub")
    if user_id is None:
        logger.warning("No 'sub' claim in token")
        raise credentials_exception
    return Actor(user_id=str(user_id))
