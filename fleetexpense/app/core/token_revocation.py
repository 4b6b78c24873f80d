"""
Token revocation backed by Redis.

Logout puts the token on a blacklist; every authenticated request checks
it. Entries expire on their own once the token could no longer be used.
"""

import logging

from fleetexpense.app.core.config import settings

logger = logging.getLogger(__name__)


def _revocation_key(token: str) -> str:
    return f"{settings.revoked_token_prefix}{token}"


def _revocation_ttl() -> int:
    if settings.revoked_token_ttl_seconds:
        return settings.revoked_token_ttl_seconds
    return settings.access_token_expire_minutes * 60


async def revoke_token(redis, token: str, user_id: int) -> bool:
    """
    Blacklist a token.

    Returns:
        True if the token was stored, False if Redis could not be reached
    """
    try:
        await redis.setex(_revocation_key(token), _revocation_ttl(), str(user_id))
    except Exception:
        logger.exception("Could not revoke token for user %s", user_id)
        return False

    logger.info("Token revoked for user %s", user_id)
    return True


async def is_token_revoked(redis, token: str) -> bool:
    """
    Check the blacklist.

    Fails open: if Redis is unreachable the token is treated as valid and a
    warning is logged.
    """
    try:
        return await redis.exists(_revocation_key(token)) > 0
    except Exception:
        logger.warning("Token revocation check unavailable", exc_info=True)
        return False
