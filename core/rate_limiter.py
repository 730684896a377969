import redis
from fastapi import Depends, HTTPException

from core.config import REDIS_URL, RATE_LIMIT_ENABLED
from core.dependencies import get_current_user

redis_client = redis.from_url(
    REDIS_URL,
    decode_responses=True
)

def rate_limit(key: str, limit: int, window_seconds: int):
    key = f"rl:{key}"

    current = redis_client.incr(key)

    if current == 1:
        redis_client.expire(key, window_seconds)

    if current > limit:
        raise HTTPException(
            status_code=429,
            detail="Too many requests. Please slow down."
        )


def per_user_limit(scope: str, limit: int, window_seconds: int = 3600):
    """Dependency applying `rate_limit` to the authenticated caller."""

    def dependency(user=Depends(get_current_user)):
        if RATE_LIMIT_ENABLED:
            rate_limit(f"{scope}:{user['uid']}", limit, window_seconds)
        return user

    return dependency
