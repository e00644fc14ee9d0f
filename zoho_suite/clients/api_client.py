"""Generic client for one Zoho product API.

Every product (CRM, Books, People, Desk) is an ``ApiClient`` configured with a
``ProductConfig``: base URL template, API version, pagination dialect, paging policy,
per-minute request quota, and a function that turns a listing response into a ``Page``.
The product modules under ``connectors/`` add thin parameter-shaping methods on top.
"""

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import httpx
from aiolimiter import AsyncLimiter

from zoho_suite.http.dispatcher import AccessTokenSource, Middleware, RequestContext, RequestDispatcher
from zoho_suite.http.errors import ValidationError
from zoho_suite.http.middleware import (
    rate_limiter_middleware,
    request_logging_middleware,
)
from zoho_suite.pagination.engine import CancellationToken, FetchPage, PaginationEngine
from zoho_suite.pagination.models import Page, PaginationConfig, PaginationResult
from zoho_suite.utils.config import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    SUPPORTED_DATA_CENTERS,
    get_pagination_overrides,
    get_product_base_url,
)
from zoho_suite.utils.logging import LogContext, get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL_TEMPLATE = "https://{product}.zoho.{data_center}/api/{version}"
DEFAULT_REQUESTS_PER_MINUTE = 100

Record = dict[str, Any]
PageParser = Callable[[Any, str], Page[Record]]


class PaginationDialect(StrEnum):
    """How a product addresses pages in its listing endpoints."""

    # ?page=N&per_page=M (1-based), or ?page_token=T&per_page=M for token continuation
    PAGE_NUMBER = "page_number"
    # ?from=OFFSET&limit=M (0-based)
    OFFSET = "offset"

    def page_params(self, cursor: int | str, page_size: int) -> dict[str, Any]:
        if self is PaginationDialect.OFFSET:
            if isinstance(cursor, str):
                raise ValidationError("Offset pagination does not accept page tokens")
            return {"from": cursor, "limit": page_size}

        if isinstance(cursor, str):
            return {"page_token": cursor, "per_page": page_size}
        return {"page": cursor // page_size + 1, "per_page": page_size}


def parse_data_page(body: Any, records_key: str) -> Page[Record]:
    """Default parser: records under ``records_key``, no pagination hints."""
    if not isinstance(body, Mapping):
        return Page(records=[])
    return Page(records=list(body.get(records_key) or []))


@dataclass(frozen=True)
class ProductConfig:
    product: str
    display_name: str
    version: str
    dialect: PaginationDialect
    pagination: PaginationConfig = field(default_factory=PaginationConfig)
    base_url_template: str = DEFAULT_BASE_URL_TEMPLATE
    requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE
    records_key: str = "data"
    parse_page: PageParser = parse_data_page

    def base_url(self, data_center: str) -> str:
        return self.base_url_template.format(
            product=self.product, data_center=data_center, version=self.version
        )


def require_param(value: Any, name: str) -> Any:
    """Raise ValidationError before any request when a required argument is empty."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{name} is required")
    return value


def _resume_point(start_offset: int, page_token: str | None) -> tuple[int, str | None]:
    """Split a ``next_page_token`` into an offset or an API page token.

    Offset continuations are decimal record offsets; API page tokens are not.
    """
    if page_token is not None and page_token.isdigit():
        return int(page_token), None
    return start_offset, page_token


class ApiClient:
    """One product API: dispatcher, middleware chain and pagination engine bound together."""

    def __init__(
        self,
        config: ProductConfig,
        token_provider: AccessTokenSource,
        data_center: str = "com",
        http_client: httpx.AsyncClient | None = None,
        middlewares: Sequence[Middleware] = (),
        limiter: AsyncLimiter | None = None,
        base_url: str | None = None,
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    ):
        """
        Args:
            config: Product binding
            token_provider: Token source shared with the other product clients
            data_center: Regional suffix, e.g. "com" or "eu"
            http_client: Optional httpx client (created if None)
            middlewares: Extra middlewares, run inside logging and rate limiting
            limiter: Request-rate limiter, usually shared by the clients of one suite;
                a private one at ``requests_per_minute`` when omitted
            base_url: Explicit base URL; otherwise ZOHO_<PRODUCT>_BASE_URL or the template
            timeout_seconds: Per-request timeout
        """
        if data_center not in SUPPORTED_DATA_CENTERS:
            raise ValidationError(f"Unsupported Zoho data center: {data_center}")

        self.config = config
        self.data_center = data_center
        self.base_url = base_url or get_product_base_url(config.product) or config.base_url(data_center)
        self.pagination_config = config.pagination.with_overrides(
            **get_pagination_overrides(config.product)
        )

        self.limiter = limiter or AsyncLimiter(config.requests_per_minute, 60)
        self._dispatcher = RequestDispatcher(
            token_provider,
            http_client=http_client,
            middlewares=[request_logging_middleware, rate_limiter_middleware(self.limiter), *middlewares],
            timeout_seconds=timeout_seconds,
        )
        self._engine = PaginationEngine(self.pagination_config, name=config.product)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, _exc_type: Any, _exc: Any, _tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._dispatcher.aclose()

    def context(
        self,
        http_method: str,
        path: str,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
    ) -> RequestContext:
        require_param(path, "path")
        return RequestContext(
            product=self.config.product,
            base_url=self.base_url,
            data_center=self.data_center,
            http_method=http_method.upper(),
            path=path,
            query={k: v for k, v in (query or {}).items() if v is not None},
            body=body,
        )

    async def request(
        self,
        http_method: str,
        path: str,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        return await self._dispatcher.execute(self.context(http_method, path, query, body))

    async def get(self, path: str, query: Mapping[str, Any] | None = None) -> Any:
        return await self.request("GET", path, query=query)

    async def post(self, path: str, body: Any = None, query: Mapping[str, Any] | None = None) -> Any:
        return await self.request("POST", path, query=query, body=body)

    async def put(self, path: str, body: Any = None, query: Mapping[str, Any] | None = None) -> Any:
        return await self.request("PUT", path, query=query, body=body)

    async def patch(self, path: str, body: Any = None, query: Mapping[str, Any] | None = None) -> Any:
        return await self.request("PATCH", path, query=query, body=body)

    async def delete(self, path: str, query: Mapping[str, Any] | None = None) -> Any:
        return await self.request("DELETE", path, query=query)

    def page_fetcher(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        records_key: str | None = None,
    ) -> FetchPage[Record]:
        """``fetch_page(cursor, page_size)`` for the engine, shaped by this product's dialect."""
        base_params = dict(params or {})
        key = records_key or self.config.records_key

        async def fetch_page(cursor: int | str, page_size: int) -> Page[Record]:
            query = {**base_params, **self.config.dialect.page_params(cursor, page_size)}
            body = await self.get(path, query=query)
            return self.config.parse_page(body, key)

        return fetch_page

    def _check_page_size(self, page_size: int | None) -> int:
        if page_size is not None and page_size <= 0:
            raise ValidationError(f"page_size must be positive, got {page_size}")
        return self._engine.effective_page_size(page_size)

    def _check_start(self, start_offset: int, size: int, skip_records: int, page_token: str | None) -> None:
        if start_offset < 0:
            raise ValidationError(f"start_offset must not be negative, got {start_offset}")
        if skip_records < 0:
            raise ValidationError(f"skip_records must not be negative, got {skip_records}")
        # page numbers can only address offsets on a page boundary
        if page_token is None and self.config.dialect is PaginationDialect.PAGE_NUMBER and start_offset % size:
            raise ValidationError(
                f"start_offset {start_offset} is not a multiple of page_size {size}; "
                f"{self.config.display_name} pages by page number"
            )

    async def list_page(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        records_key: str | None = None,
        page_size: int | None = None,
        start_offset: int = 0,
        page_token: str | None = None,
        skip_records: int = 0,
    ) -> PaginationResult[Record]:
        """Fetch exactly one page and describe where the listing continues.

        A short or empty page is final, as in a full sweep; otherwise an explicit
        ``False`` hint from the API also ends the listing.
        """
        size = self._check_page_size(page_size)
        start_offset, page_token = _resume_point(start_offset, page_token)
        self._check_start(start_offset, size, skip_records, page_token)

        fetch_page = self.page_fetcher(path, params, records_key)
        page = await fetch_page(page_token if page_token else start_offset, size)

        has_more = len(page.records) == size and page.has_more_hint is not False

        next_page_token = None
        if has_more:
            next_page_token = page.next_cursor or str(start_offset + size)

        return PaginationResult(
            data=page.records[skip_records:],
            total_records=len(page.records),
            has_more=has_more,
            current_page=start_offset // size + 1,
            total_pages=math.ceil(page.total_count / size) if page.total_count else None,
            next_page_token=next_page_token,
            request_count=1,
        )

    async def paginate(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        records_key: str | None = None,
        page_size: int | None = None,
        max_records: int | None = None,
        start_offset: int = 0,
        cancellation: CancellationToken | None = None,
        page_token: str | None = None,
        skip_records: int = 0,
    ) -> PaginationResult[Record]:
        """Sweep a listing endpoint with the pagination engine.

        To continue a truncated sweep pass the previous result's ``next_page_token``
        and ``next_page_skip`` back as ``page_token`` and ``skip_records``.
        """
        size = self._check_page_size(page_size)
        if max_records is not None and max_records <= 0:
            raise ValidationError(f"max_records must be positive, got {max_records}")
        start_offset, page_token = _resume_point(start_offset, page_token)
        self._check_start(start_offset, size, skip_records, page_token)

        # engine and request logs of this sweep carry the product and path
        with LogContext(product=self.config.product, path=path):
            return await self._engine.paginate(
                self.page_fetcher(path, params, records_key),
                page_size=page_size,
                max_records=max_records,
                start_offset=start_offset,
                cancellation=cancellation,
                page_token=page_token,
                skip_records=skip_records,
            )

    async def list_records(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        records_key: str | None = None,
        page_size: int | None = None,
        max_records: int | None = None,
        start_offset: int = 0,
        auto_paginate: bool = False,
        cancellation: CancellationToken | None = None,
    ) -> PaginationResult[Record]:
        """One page, or a full sweep when ``auto_paginate`` and the product allows it."""
        if auto_paginate and self.pagination_config.enable_auto_pagination:
            return await self.paginate(
                path,
                params,
                records_key,
                page_size=page_size,
                max_records=max_records,
                start_offset=start_offset,
                cancellation=cancellation,
            )

        if auto_paginate:
            logger.info(
                "Auto-pagination disabled for product, returning a single page",
                product=self.config.product,
                path=path,
            )
        return await self.list_page(path, params, records_key, page_size=page_size, start_offset=start_offset)
