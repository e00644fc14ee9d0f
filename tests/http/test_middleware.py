import httpx
import pytest
from aiolimiter import AsyncLimiter

from zoho_suite.http.dispatcher import RequestContext
from zoho_suite.http.errors import ApiError
from zoho_suite.http.middleware import (
    rate_limiter_middleware,
    request_logging_middleware,
    static_query_middleware,
)


def _ctx() -> RequestContext:
    return RequestContext(
        product="books",
        base_url="https://www.zohoapis.com/books/v3",
        data_center="com",
        http_method="GET",
        path="invoices",
        query={"page": 1},
    )


@pytest.mark.asyncio
async def test_static_query_adds_params_without_mutating_context():
    seen: list[RequestContext] = []
    ctx = _ctx()

    async def call_next(c):
        seen.append(c)
        return httpx.Response(200)

    await static_query_middleware({"organization_id": "10234695"})(ctx, call_next)

    assert seen[0].query == {"page": 1, "organization_id": "10234695"}
    assert ctx.query == {"page": 1}


@pytest.mark.asyncio
async def test_rate_limiter_middleware_acquires_limiter():
    limiter = AsyncLimiter(1, 60)
    middleware = rate_limiter_middleware(limiter)

    async def call_next(c):
        return httpx.Response(200)

    response = await middleware(_ctx(), call_next)

    assert response.status_code == 200
    assert limiter.has_capacity() is False


@pytest.mark.asyncio
async def test_request_logging_reraises_classified_errors():
    async def call_next(c):
        raise ApiError("Service Unavailable", http_status=503, retryable=True)

    with pytest.raises(ApiError):
        await request_logging_middleware(_ctx(), call_next)


@pytest.mark.asyncio
async def test_request_logging_passes_response_through():
    async def call_next(c):
        return httpx.Response(200, json={"ok": True})

    response = await request_logging_middleware(_ctx(), call_next)

    assert response.json() == {"ok": True}
