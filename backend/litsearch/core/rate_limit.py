"""
Rate Limiting Middleware

Protects the search endpoints from abuse using slowapi.
Every search fans out to all external sources, so search routes get
tighter limits than cancel. Uses Redis for distributed rate limiting
when available.
"""
import redis
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from litsearch.core.config import settings
from litsearch.core.logging import get_logger

logger = get_logger(__name__)

SEARCH_LIMIT = "10/minute"
SEARCH_STREAM_LIMIT = "10/minute"
CANCEL_LIMIT = "60/minute"
DEFAULT_LIMIT = "100/minute"

DEFAULT_RETRY_AFTER = 60


def client_key(request: Request) -> str:
    """
    Key requests by client address.
    Honors the first hop of X-Forwarded-For when behind a proxy.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def resolve_storage_uri() -> str:
    """Redis when it answers a ping, in-memory otherwise."""
    redis_uri = f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}"
    try:
        redis.from_url(redis_uri, socket_connect_timeout=2).ping()
    except (redis.ConnectionError, redis.TimeoutError):
        logger.warning("Redis unreachable, rate limits are per-process (memory://)")
        return "memory://"
    logger.info("Rate limits stored in Redis")
    return redis_uri


STORAGE_URI = resolve_storage_uri()

limiter = Limiter(
    key_func=client_key,
    storage_uri=STORAGE_URI,
    default_limits=[DEFAULT_LIMIT],
    strategy="fixed-window",
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 with a Retry-After hint."""
    retry_after = getattr(exc, "retry_after", DEFAULT_RETRY_AFTER)
    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "detail": f"Too many search requests. {exc.detail}",
            "retry_after": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )
