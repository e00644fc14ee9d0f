"""Tests for structlog configuration and sweep-scoped log context."""

import json
import logging
import os
from io import StringIO
from unittest.mock import patch

import httpx
import pytest
import structlog
from aiolimiter import AsyncLimiter

from zoho_suite.clients.api_client import ApiClient, PaginationDialect, ProductConfig
from zoho_suite.http.errors import ApiError
from zoho_suite.pagination.models import PaginationConfig
from zoho_suite.utils.logging import (
    LogContext,
    _get_log_renderer,
    _is_local_environment,
    configure_logging,
    get_logger,
    redact_token,
)

CONFIG = ProductConfig(
    product="desk",
    display_name="Zoho Desk",
    version="v1",
    dialect=PaginationDialect.OFFSET,
    pagination=PaginationConfig(default_page_size=2, max_page_size=2, rate_limit_delay_ms=0),
)


class _MockTransport(httpx.AsyncBaseTransport):
    def __init__(self, responses: list[httpx.Response]) -> None:
        self._responses = responses

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return self._responses.pop(0)


class StaticTokenProvider:
    async def get_valid_access_token(self) -> str:
        return "token"

    async def refresh_access_token(self, stale_token: str | None = None) -> str:
        return "token"


def _client(responses: list[httpx.Response]) -> ApiClient:
    return ApiClient(
        CONFIG,
        StaticTokenProvider(),
        http_client=httpx.AsyncClient(transport=_MockTransport(responses)),
        limiter=AsyncLimiter(10_000, 1),
    )


@pytest.fixture
def json_logs(monkeypatch):
    """Route the root logger into a buffer with the JSON renderer; returns a reader."""
    monkeypatch.setenv("LOG_RENDERER", "json")
    configure_logging()

    root_logger = logging.getLogger()
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(root_logger.handlers[0].formatter)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    def read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]

    yield read

    structlog.contextvars.clear_contextvars()
    root_logger.removeHandler(handler)


class TestRendererSelection:
    def test_local_environment_is_detected(self):
        with patch.dict(os.environ, {"ZOHO_ENVIRONMENT": "local"}):
            assert _is_local_environment() is True

        with patch.dict(os.environ, {"ZOHO_ENVIRONMENT": "production"}):
            assert _is_local_environment() is False

    def test_console_locally_json_elsewhere(self):
        with patch.dict(os.environ, {"ZOHO_ENVIRONMENT": "local", "LOG_RENDERER": ""}):
            assert isinstance(_get_log_renderer(), structlog.dev.ConsoleRenderer)

        with patch.dict(os.environ, {"ZOHO_ENVIRONMENT": "production", "LOG_RENDERER": ""}):
            assert isinstance(_get_log_renderer(), structlog.processors.JSONRenderer)

    def test_log_renderer_env_wins_over_environment(self):
        with patch.dict(os.environ, {"ZOHO_ENVIRONMENT": "local", "LOG_RENDERER": "json"}):
            assert isinstance(_get_log_renderer(), structlog.processors.JSONRenderer)

        with patch.dict(os.environ, {"ZOHO_ENVIRONMENT": "production", "LOG_RENDERER": "console"}):
            assert isinstance(_get_log_renderer(), structlog.dev.ConsoleRenderer)

    def test_httpx_request_logs_quieted_above_debug(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "INFO"}):
            configure_logging()
        assert logging.getLogger("httpx").level == logging.WARNING


class TestSweepContext:
    @pytest.mark.asyncio
    async def test_sweep_logs_carry_product_and_path(self, json_logs):
        client = _client([httpx.Response(200, json={"data": [{"id": "1"}]})])

        await client.paginate("departments/7/tickets")
        get_logger(__name__).info("After sweep")

        finished, after = json_logs()
        assert finished["message"] == "Pagination finished"
        assert finished["product"] == "desk"
        assert finished["path"] == "departments/7/tickets"
        assert "path" not in after

    @pytest.mark.asyncio
    async def test_context_unbound_when_sweep_fails(self, json_logs):
        client = _client([httpx.Response(503, json={"message": "Service Unavailable"}) for _ in range(4)])

        with pytest.raises(ApiError):
            await client.paginate("departments/7/tickets")
        get_logger(__name__).info("After failure")

        *retries, after = json_logs()
        assert [line["message"] for line in retries] == ["Page request failed, retrying same page"] * 3
        assert all(line["path"] == "departments/7/tickets" and line["product"] == "desk" for line in retries)
        assert after["message"] == "After failure"
        assert "product" not in after
        assert "path" not in after

    @pytest.mark.asyncio
    async def test_caller_context_nests_around_sweep(self, json_logs):
        client = _client([httpx.Response(200, json={"data": []})])

        with LogContext(tool="list_tickets"):
            await client.paginate("departments/7/tickets")

        (finished,) = json_logs()
        assert finished["tool"] == "list_tickets"
        assert finished["product"] == "desk"

    def test_stdlib_loggers_include_bound_context(self, json_logs):
        with LogContext(product="books"):
            logging.getLogger("httpx").warning("connection reset")

        (line,) = json_logs()
        assert line["message"] == "connection reset"
        assert line["product"] == "books"


class TestRedactToken:
    def test_long_token_keeps_prefix_and_suffix(self):
        token = "1000.abcdef0123456789.fedcba9876543210"
        redacted = redact_token(token)
        assert redacted == "1000.abc...3210"
        assert token not in redacted

    def test_short_token_fully_hidden(self):
        assert redact_token("short") == "***"

    def test_missing_token(self):
        assert redact_token(None) == "<none>"
        assert redact_token("") == "<none>"
