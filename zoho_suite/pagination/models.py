from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class PaginationConfig(BaseModel):
    """Per-product paging policy. Frozen: supplied once at client construction."""

    model_config = ConfigDict(frozen=True)

    default_page_size: int = Field(default=200, gt=0)
    max_page_size: int = Field(default=200, gt=0)
    enable_auto_pagination: bool = True
    # base delay between successive page requests; grows 1.5x per request
    rate_limit_delay_ms: int = Field(default=1000, ge=0)
    max_retries: int = Field(default=3, ge=0)
    use_page_tokens: bool = False
    max_records_per_batch: int = Field(default=5000, gt=0)

    def with_overrides(self, **overrides: Any) -> "PaginationConfig":
        values = {k: v for k, v in overrides.items() if v is not None}
        if not values:
            return self
        # re-validate rather than model_copy, which skips validation
        return PaginationConfig.model_validate({**self.model_dump(), **values})


@dataclass
class Page(Generic[T]):
    """One page as returned by a fetch-page function."""

    records: list[T]
    # explicit "more pages" signal from the API, None when the API gives none
    has_more_hint: bool | None = None
    # opaque continuation token for APIs that return one
    next_cursor: str | None = None
    total_count: int | None = None


@dataclass
class PaginationState:
    """Mutable bookkeeping for a single sweep; never shared between calls."""

    offset: int
    page_size: int
    page_token: str | None = None
    records_fetched: int = 0
    has_more: bool = True
    request_count: int = 0
    # where the most recent page was fetched from, and how many of its leading records were dropped
    last_cursor: int | str = 0
    last_page_skip: int = 0
    # len(collected) before the most recent page was added
    last_page_start: int = 0

    @property
    def cursor(self) -> int | str:
        return self.page_token if self.page_token is not None else self.offset


@dataclass
class PaginationResult(Generic[T]):
    data: list[T]
    # records received from the API, which can exceed len(data) when max_records truncates
    total_records: int
    has_more: bool
    current_page: int
    total_pages: int | None = None
    # continue from here: a record offset, or the API page token when use_page_tokens is set
    next_page_token: str | None = None
    # leading records of the page at next_page_token that are already in data
    next_page_skip: int = 0
    request_count: int = 0
    # the request safety ceiling stopped the sweep
    ceiling_hit: bool = False
