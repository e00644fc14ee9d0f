"""Auto-pagination across Zoho listing endpoints.

PaginationEngine drives a caller-supplied ``fetch_page(cursor, page_size)`` until
one of these stops the sweep:

- an empty page, or a short page (fewer records than requested)
- an explicit "no more records" hint from the API
- ``max_records`` collected
- the hard ceiling of 100 requests per sweep
- a CancellationToken being cancelled

A full page is assumed non-final unless the API says otherwise, so a listing whose
size is an exact multiple of the page size costs one extra (empty) request.

Page requests are strictly sequential. Before every request after the first the
engine sleeps ``backoff_delay(request_count)`` to stay under per-minute quotas, and a
page that fails with RateLimitError or a retryable ApiError is retried in place up
to ``max_retries`` times without advancing the cursor.
"""

import asyncio
import math
from collections.abc import Awaitable, Callable
from typing import TypeVar

from zoho_suite.http.errors import ClassifiedError, RateLimitError
from zoho_suite.pagination.models import Page, PaginationConfig, PaginationResult, PaginationState
from zoho_suite.utils.logging import get_logger

logger = get_logger(__name__)

MAX_REQUESTS_PER_SWEEP = 100
MAX_BACKOFF_DELAY_MS = 10_000
BACKOFF_GROWTH = 1.5

T = TypeVar("T")

FetchPage = Callable[[int | str, int], Awaitable[Page[T]]]


def backoff_delay(request_count: int, base_delay_ms: float) -> float:
    """Delay in ms before the request that follows ``request_count`` completed requests.

    ``min(base * 1.5^(n-1), 10000)`` for n >= 1, 0 for the first request.
    """
    if request_count < 1:
        return 0
    return min(base_delay_ms * BACKOFF_GROWTH ** (request_count - 1), MAX_BACKOFF_DELAY_MS)


class CancellationToken:
    """Lets a caller stop a long sweep between pages or during a backoff sleep."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self, timeout_seconds: float) -> bool:
        """Sleep up to ``timeout_seconds``; True if cancelled meanwhile."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout_seconds)
        except TimeoutError:
            return False
        return True


class PaginationCancelledError(Exception):
    """A sweep was cancelled; ``partial`` holds what had been collected."""

    def __init__(self, partial: PaginationResult):
        super().__init__(
            f"Pagination cancelled after {partial.request_count} requests "
            f"({len(partial.data)} records)"
        )
        self.partial = partial


class PaginationEngine:
    def __init__(self, config: PaginationConfig, name: str = "zoho"):
        self.config = config
        self.name = name

    def effective_page_size(self, requested: int | None) -> int:
        return min(requested or self.config.default_page_size, self.config.max_page_size)

    async def paginate(
        self,
        fetch_page: FetchPage[T],
        page_size: int | None = None,
        max_records: int | None = None,
        start_offset: int = 0,
        cancellation: CancellationToken | None = None,
        page_token: str | None = None,
        skip_records: int = 0,
    ) -> PaginationResult[T]:
        """Collect records page by page until a stop condition.

        Args:
            fetch_page: ``(cursor, page_size) -> Page``; cursor is a record offset, or the
                previous page's token when ``use_page_tokens`` is set and one was returned
            page_size: Requested page size, capped at ``max_page_size``
            max_records: Record cap for this sweep (default ``max_records_per_batch``)
            start_offset: Offset of the first record to fetch
            cancellation: Optional token to abort the sweep early
            page_token: Resume from this API page token instead of ``start_offset``
            skip_records: Leading records of the first page to drop, as given by a previous
                result's ``next_page_skip``

        Raises:
            ClassifiedError: A page failed terminally or exhausted its retries
            PaginationCancelledError: ``cancellation`` fired
        """
        state = PaginationState(
            offset=start_offset, page_size=self.effective_page_size(page_size), page_token=page_token
        )
        record_cap = max_records or self.config.max_records_per_batch
        collected: list[T] = []
        ceiling_hit = False

        while True:
            if len(collected) >= record_cap:
                # more data may exist; has_more keeps the last page's verdict
                break

            delay_ms = backoff_delay(state.request_count, self.config.rate_limit_delay_ms)
            await self._pause(delay_ms, cancellation, state, collected, start_offset)

            state.last_cursor = state.cursor
            page = await self._fetch_with_retries(fetch_page, state, cancellation, collected, start_offset)

            state.last_page_skip = skip_records if state.request_count == 0 else 0
            state.last_page_start = len(collected)
            records = page.records[state.last_page_skip :]
            collected.extend(records)
            state.records_fetched += len(records)
            state.request_count += 1
            state.offset += state.page_size
            state.page_token = page.next_cursor if self.config.use_page_tokens else None

            state.has_more = (
                len(page.records) > 0
                and len(page.records) == state.page_size
                and page.has_more_hint is not False
            )
            if state.has_more and self.config.use_page_tokens and page.has_more_hint and not page.next_cursor:
                logger.debug(
                    "No page token returned, continuing by offset",
                    pagination=self.name,
                    offset=state.offset,
                )

            logger.debug(
                "Fetched page",
                pagination=self.name,
                request_count=state.request_count,
                page_records=len(page.records),
                records_fetched=state.records_fetched,
                has_more=state.has_more,
            )

            if not state.has_more:
                break

            if state.request_count >= MAX_REQUESTS_PER_SWEEP:
                ceiling_hit = True
                logger.warning(
                    "Stopping pagination at request safety ceiling",
                    pagination=self.name,
                    request_count=state.request_count,
                    records_fetched=state.records_fetched,
                )
                break

        result = self._result(state, collected, start_offset, record_cap, ceiling_hit)
        logger.info(
            "Pagination finished",
            pagination=self.name,
            request_count=result.request_count,
            records=len(result.data),
            has_more=result.has_more,
            ceiling_hit=ceiling_hit,
        )
        return result

    async def _fetch_with_retries(
        self,
        fetch_page: FetchPage[T],
        state: PaginationState,
        cancellation: CancellationToken | None,
        collected: list[T],
        start_offset: int,
    ) -> Page[T]:
        attempt = 0
        while True:
            try:
                return await fetch_page(state.cursor, state.page_size)
            except ClassifiedError as e:
                if not e.retryable or attempt >= self.config.max_retries:
                    raise
                attempt += 1

                if isinstance(e, RateLimitError):
                    delay_ms = e.retry_after_seconds * 1000
                else:
                    delay_ms = backoff_delay(attempt, self.config.rate_limit_delay_ms)

                logger.warning(
                    "Page request failed, retrying same page",
                    pagination=self.name,
                    cursor=state.cursor,
                    attempt=attempt,
                    max_retries=self.config.max_retries,
                    delay_ms=delay_ms,
                    error=str(e),
                )
                await self._pause(delay_ms, cancellation, state, collected, start_offset)

    async def _pause(
        self,
        delay_ms: float,
        cancellation: CancellationToken | None,
        state: PaginationState,
        collected: list[T],
        start_offset: int,
    ) -> None:
        if cancellation is None:
            if delay_ms > 0:
                await asyncio.sleep(delay_ms / 1000)
            return

        if not cancellation.cancelled and delay_ms > 0:
            await cancellation.wait(delay_ms / 1000)

        if cancellation.cancelled:
            partial = self._result(state, collected, start_offset, len(collected), False)
            logger.info(
                "Pagination cancelled",
                pagination=self.name,
                request_count=state.request_count,
                records=len(collected),
            )
            raise PaginationCancelledError(partial)

    def _result(
        self,
        state: PaginationState,
        collected: list[T],
        start_offset: int,
        record_cap: int,
        ceiling_hit: bool,
    ) -> PaginationResult[T]:
        data = collected[:record_cap]
        cut = len(collected) > record_cap
        has_more = cut or (state.has_more and (len(collected) >= record_cap or ceiling_hit))

        next_page_token: str | None = None
        next_page_skip = 0
        if cut:
            # the last page was only partly returned; resume from that page, skipping what was kept
            next_page_token = str(state.last_cursor)
            next_page_skip = state.last_page_skip + record_cap - state.last_page_start
        elif has_more:
            if self.config.use_page_tokens and state.page_token:
                next_page_token = state.page_token
            else:
                next_page_token = str(state.offset)

        first_page = start_offset // state.page_size + 1
        current_page = first_page + state.request_count - 1 if state.request_count else first_page

        return PaginationResult(
            data=data,
            total_records=len(collected),
            has_more=has_more,
            current_page=current_page,
            total_pages=math.ceil(len(collected) / state.page_size),
            next_page_token=next_page_token,
            next_page_skip=next_page_skip,
            request_count=state.request_count,
            ceiling_hit=ceiling_hit,
        )
