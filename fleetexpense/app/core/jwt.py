"""
Access token encoding and decoding.

Tokens carry the owner's username (``sub``) and id (``user_id``). An expired
token is reported as SessionExpiredError so clients can tell "log in again"
apart from "this token is wrong".
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import ExpiredSignatureError, JWTError, jwt
from fleetexpense.app.core.config import settings
from fleetexpense.app.core.exceptions import SessionExpiredError


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign an access token for ``data``.

    Args:
        data: Claims to embed, normally ``{"sub": username, "user_id": id}``
        expires_delta: Lifetime override; a negative value yields a token
            that is already expired
    """
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    claims = {**data, "iat": issued_at, "exp": issued_at + expires_delta}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify a token and return its claims.

    Returns None for a malformed token or a bad signature.

    Raises:
        SessionExpiredError: the signature is valid but the token expired
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError:
        raise SessionExpiredError()
    except JWTError:
        return None
