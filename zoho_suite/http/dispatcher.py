"""Single-call execution against a Zoho product API.

RequestDispatcher attaches the access token, runs the request through an ordered
middleware chain around the httpx transport, classifies failures, and recovers
exactly one kind of failure locally: a rejected token, by refreshing once and
replaying the request once. Rate limits and transient errors are raised to the
caller untouched.
"""

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

import httpx

from zoho_suite.http.errors import AuthError, classify_response, classify_transport_error
from zoho_suite.utils.config import DEFAULT_REQUEST_TIMEOUT_SECONDS
from zoho_suite.utils.logging import get_logger

logger = get_logger(__name__)

AUTH_SCHEME = "Zoho-oauthtoken"

_DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


@dataclass(frozen=True)
class RequestContext:
    """Everything needed to issue one request. Built fresh for each attempt."""

    product: str
    base_url: str
    data_center: str
    http_method: str
    path: str
    query: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.path.lstrip('/')}"

    def with_query(self, **params: Any) -> "RequestContext":
        return replace(self, query={**self.query, **params})


Handler = Callable[[RequestContext], Awaitable[httpx.Response]]
Middleware = Callable[[RequestContext, Handler], Awaitable[httpx.Response]]


class AccessTokenSource(Protocol):
    async def get_valid_access_token(self) -> str: ...

    async def refresh_access_token(self, stale_token: str | None = None) -> str: ...


class RequestDispatcher:
    def __init__(
        self,
        token_provider: AccessTokenSource,
        http_client: httpx.AsyncClient | None = None,
        middlewares: Sequence[Middleware] = (),
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        auth_scheme: str = AUTH_SCHEME,
    ):
        """
        Args:
            token_provider: Shared source of access tokens
            http_client: Optional httpx client (created if None)
            middlewares: Applied outermost-first around the transport call
            timeout_seconds: Fixed per-request timeout
            auth_scheme: Authorization header scheme
        """
        self._token_provider = token_provider
        self._middlewares = tuple(middlewares)
        self._auth_scheme = auth_scheme
        # sent with every request, including through an injected client
        self._timeout = httpx.Timeout(timeout_seconds)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(headers=_DEFAULT_HEADERS, timeout=self._timeout)

    async def __aenter__(self) -> "RequestDispatcher":
        return self

    async def __aexit__(self, _exc_type: Any, _exc: Any, _tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def execute(self, ctx: RequestContext) -> Any:
        """Execute one call and return the parsed body.

        Raises:
            AuthError: The token was rejected twice, or could not be refreshed
            RateLimitError: 429 from the product API
            ApiError: Any other failure; ``retryable`` for 5xx and transport errors
        """
        token = await self._token_provider.get_valid_access_token()
        try:
            return await self._execute_once(ctx, token)
        except AuthError:
            logger.info(
                "Zoho API returned 401, refreshing token and retrying",
                product=ctx.product,
                method=ctx.http_method,
                path=ctx.path,
            )

        token = await self._token_provider.refresh_access_token(stale_token=token)
        # a second AuthError propagates; no further refresh
        return await self._execute_once(replace(ctx), token)

    async def _execute_once(self, ctx: RequestContext, token: str) -> Any:
        handler = self._build_chain(token)
        response = await handler(ctx)

        if not response.is_success:
            raise classify_response(response)

        return _parse_body(response)

    def _build_chain(self, token: str) -> Handler:
        async def transport(ctx: RequestContext) -> httpx.Response:
            return await self._send(ctx, token)

        handler: Handler = transport
        for middleware in reversed(self._middlewares):
            handler = _bind(middleware, handler)
        return handler

    async def _send(self, ctx: RequestContext, token: str) -> httpx.Response:
        headers = {**ctx.headers, "Authorization": f"{self._auth_scheme} {token}"}
        try:
            return await self._client.request(
                ctx.http_method,
                ctx.url,
                params=dict(ctx.query) or None,
                json=ctx.body,
                headers=headers,
                timeout=self._timeout,
            )
        except httpx.TransportError as e:
            raise classify_transport_error(e) from e


def _bind(middleware: Middleware, call_next: Handler) -> Handler:
    async def handler(ctx: RequestContext) -> httpx.Response:
        return await middleware(ctx, call_next)

    return handler


def _parse_body(response: httpx.Response) -> Any:
    # CRM answers an empty listing with 204 and no body
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        logger.warning(
            "Zoho API returned non-JSON response",
            url=str(response.request.url),
            preview=response.text[:200],
        )
        return response.text
