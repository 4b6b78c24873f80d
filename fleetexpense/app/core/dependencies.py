"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from fleetexpense.app.core.exceptions import AuthenticationError, TokenRevokedError
from fleetexpense.app.core.jwt import decode_access_token
from fleetexpense.app.core.redis_client import get_redis
from fleetexpense.app.core.token_revocation import is_token_revoked
from fleetexpense.app.db.session import get_db
from fleetexpense.app.models.user import User

# HTTP Bearer security scheme; missing credentials are reported by us, not FastAPI
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
) -> dict:
    """
    FastAPI dependency for JWT authentication.
    
    Checks, in order:
    1. A bearer token is present
    2. The token signature and expiry are valid
    3. The token has not been revoked by logout
    4. The user still exists and is active
    
    Returns:
        Decoded token payload containing user information
        
    Raises:
        AuthenticationError: no identity could be established
        SessionExpiredError: the token expired (re-login required)
        TokenRevokedError: the token was revoked
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    token = credentials.credentials
    
    # 1. Decode and validate JWT
    payload = decode_access_token(token)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")
    
    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError("Invalid token payload")
    
    # 2. Check if this specific token has been revoked
    if await is_token_revoked(redis, token):
        raise TokenRevokedError()
    
    # 3. Real-time database check: Verify user is still active
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    
    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")
    
    payload["token"] = token
    return payload
