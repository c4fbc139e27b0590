"""
Redis fixed-window rate limiting for payment and email endpoints.

Each limiter counts requests per client address in a window that starts on
the first hit. When Redis cannot be reached the request is refused (503):
these endpoints never run unthrottled.
"""

import logging
import os
from typing import Optional

import redis
from fastapi import HTTPException, Request, status

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """Shared client, from REDIS_URL or the individual REDIS_* settings"""
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    common = {
        "decode_responses": True,
        "socket_connect_timeout": 5,
        "socket_timeout": 5,
        "retry_on_timeout": True,
    }
    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        client = redis.from_url(redis_url, **common)
    else:
        client = redis.Redis(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=int(os.getenv("REDIS_PORT", "6379")),
            password=os.getenv("REDIS_PASSWORD"),
            db=int(os.getenv("REDIS_DB", "0")),
            ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
            **common,
        )

    try:
        client.ping()
    except redis.RedisError as e:
        logger.error(f"❌ Redis unreachable: {e}")
        raise

    logger.info("✅ Redis connected for rate limiting")
    _redis_client = client
    return _redis_client


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: redis.Redis
) -> tuple[bool, int, int]:
    """
    Count one hit against `key`.

    Returns (allowed, hits in window, seconds until the window resets).
    """
    pipe = client.pipeline()
    pipe.incr(key)
    pipe.ttl(key)
    hits, ttl = pipe.execute()

    # First hit of a window, or a key that lost its expiry
    if ttl is None or ttl < 0:
        client.expire(key, window_seconds)
        ttl = window_seconds

    return hits <= limit, hits, ttl


def client_address(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimiter:
    """FastAPI dependency enforcing `limit` requests per `window_seconds`"""

    def __init__(self, limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
        self.limit = limit
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix

    async def __call__(self, request: Request) -> None:
        key = f"{self.key_prefix}:{client_address(request)}"
        try:
            allowed, hits, ttl = check_rate_limit(
                key, self.limit, self.window_seconds, get_redis_client()
            )
        except Exception as e:
            logger.error(f"❌ Rate limiter failed for {key}, refusing request: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Rate limiting service temporarily unavailable",
            ) from e

        if not allowed:
            logger.warning(f"🚫 {key} over limit: {hits}/{self.limit} in {self.window_seconds}s")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "message": f"Too many requests. Limit is {self.limit} per {self.window_seconds} seconds.",
                    "retry_after": ttl,
                },
                headers={"Retry-After": str(ttl)},
            )

        request.state.rate_limit_remaining = self.limit - hits


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit") -> RateLimiter:
    return RateLimiter(limit, window_seconds, key_prefix)


rate_limit_payment_creation = create_rate_limiter(
    limit=10, window_seconds=3600, key_prefix="fib_payment"
)
rate_limit_manual_payment = create_rate_limiter(
    limit=5, window_seconds=3600, key_prefix="manual_payment"
)
rate_limit_welcome_email = create_rate_limiter(
    limit=5, window_seconds=3600, key_prefix="welcome_email"
)
