import redis

from app.core.config import REDIS_URL


def get_redis_url():
    return REDIS_URL


def get_redis_client() -> redis.Redis:
    """Get Redis client for locking and notification fan-out."""
    return redis.from_url(get_redis_url(), decode_responses=True)
