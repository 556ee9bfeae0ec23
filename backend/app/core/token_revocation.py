"""
Token Revocation System using Redis.

Implements token blacklisting so a signed-out token stops working before it
expires.
"""

import logging
from redis.exceptions import RedisError
from backend.app.core import redis_client as redis_module
from backend.app.core.config import settings

logger = logging.getLogger("englishcamp.auth")

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"


async def revoke_token(token: str, uid: str) -> bool:
    """
    Revoke a specific JWT token by adding it to the blacklist.

    Args:
        token: The JWT token string to revoke
        uid: User id who owns the token

    Returns:
        True if successfully revoked, False otherwise
    """
    try:
        # Tokens expire on their own; the blacklist entry only has to outlive them
        ttl_seconds = settings.access_token_expire_minutes * 60

        key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
        await redis_module.redis_client.set(key, uid, ex=ttl_seconds)

        return True
    except (RedisError, OSError) as e:
        logger.error("Error revoking token for %s: %s", uid, e)
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.

    Args:
        token: JWT token string to check

    Returns:
        True if token is revoked, False otherwise
    """
    try:
        key = f"{TOKEN_BLACKLIST_PREFIX}{token}"
        exists = await redis_module.redis_client.exists(key)
        return exists > 0
    except (RedisError, OSError) as e:
        # Fail open: an unreachable Redis must not lock every user out
        logger.error("Error checking token revocation: %s", e)
        return False
