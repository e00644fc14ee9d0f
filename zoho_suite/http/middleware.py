"""Stock middlewares for RequestDispatcher.

A middleware is an async callable ``(ctx, call_next) -> httpx.Response``. It may
replace the context before calling ``call_next`` and may inspect the response.
"""

import time
from collections.abc import Mapping
from typing import Any

import httpx
from aiolimiter import AsyncLimiter

from zoho_suite.http.dispatcher import Handler, Middleware, RequestContext
from zoho_suite.http.errors import ClassifiedError
from zoho_suite.utils.logging import get_logger

logger = get_logger(__name__)


async def request_logging_middleware(ctx: RequestContext, call_next: Handler) -> httpx.Response:
    start = time.monotonic()
    try:
        response = await call_next(ctx)
    except ClassifiedError as e:
        logger.warning(
            "Zoho API request failed",
            product=ctx.product,
            method=ctx.http_method,
            path=ctx.path,
            error=str(e),
            elapsed_ms=round((time.monotonic() - start) * 1000),
        )
        raise

    logger.debug(
        "Zoho API request",
        product=ctx.product,
        method=ctx.http_method,
        path=ctx.path,
        status=response.status_code,
        elapsed_ms=round((time.monotonic() - start) * 1000),
    )
    return response


def rate_limiter_middleware(limiter: AsyncLimiter) -> Middleware:
    async def middleware(ctx: RequestContext, call_next: Handler) -> httpx.Response:
        async with limiter:
            return await call_next(ctx)

    return middleware


def static_query_middleware(params: Mapping[str, Any]) -> Middleware:
    """Add fixed query parameters (e.g. Books' organization_id) to every request."""
    fixed = dict(params)

    async def middleware(ctx: RequestContext, call_next: Handler) -> httpx.Response:
        return await call_next(ctx.with_query(**fixed))

    return middleware
