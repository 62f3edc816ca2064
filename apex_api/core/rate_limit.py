"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address. Only the witness refresh
endpoint is limited, since every call there costs a round trip to the
RPC node.

A throttled refresh is answered like a failed one: 200 with an empty body
and no RPC call, so dashboard clients never see a status the refresh
contract does not define.

Usage in routes:
    from fastapi import Request
    from apex_api.core.rate_limit import limiter

    @router.post("/some-endpoint")
    @limiter.limit(settings.refresh_rate_limit)
    async def my_endpoint(request: Request):
        ...
"""

import logging

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)


async def refresh_throttled_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Skip the refresh without surfacing an error; the cached roster stays as it was."""
    logger.warning(
        "Refresh throttled for %s on %s (%s)",
        get_remote_address(request),
        request.url.path,
        exc.detail,
    )
    return Response(status_code=200)
