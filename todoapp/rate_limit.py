# PURPOSE: slowapi limiter shared by the auth endpoints (login, register, OTP mail).

from fastapi import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address

from .config import settings


def get_storage_uri() -> str:
    # Redis shares counters across workers; memory is per process
    return settings.REDIS_URL or settings.RATE_LIMIT_STORAGE_URI


def client_key(request: Request) -> str:
    """Budget key: the caller's address, or the first X-Forwarded-For hop behind a trusted proxy."""
    if settings.RATE_LIMIT_TRUST_PROXY:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return get_remote_address(request)


limiter = Limiter(
    key_func=client_key,
    storage_uri=get_storage_uri(),
    headers_enabled=True,
)

__all__ = ["limiter", "client_key", "_rate_limit_exceeded_handler"]
