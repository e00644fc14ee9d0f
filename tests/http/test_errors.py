import httpx
import pytest

from zoho_suite.http.errors import (
    DEFAULT_RETRY_AFTER_SECONDS,
    ApiError,
    AuthError,
    RateLimitError,
    classify,
    classify_response,
    classify_transport_error,
    parse_retry_after,
)


class TestClassify:
    def test_401_is_auth_error(self):
        error = classify(401, {}, {"code": "INVALID_TOKEN", "message": "invalid oauth token"})
        assert isinstance(error, AuthError)
        assert error.message == "invalid oauth token"
        assert error.retryable is False

    def test_429_reads_retry_after(self):
        error = classify(429, {"Retry-After": "7"}, None)
        assert isinstance(error, RateLimitError)
        assert error.retry_after_seconds == 7
        assert error.retryable is True

    def test_429_header_lookup_is_case_insensitive(self):
        error = classify(429, {"retry-after": "3"}, None)
        assert isinstance(error, RateLimitError)
        assert error.retry_after_seconds == 3

    @pytest.mark.parametrize(
        "headers",
        [{}, {"Retry-After": "soon"}, {"Retry-After": "-5"}, {"Retry-After": "inf"}, {"Retry-After": "nan"}],
    )
    def test_429_defaults_to_sixty_seconds(self, headers):
        error = classify(429, headers, None)
        assert isinstance(error, RateLimitError)
        assert error.retry_after_seconds == DEFAULT_RETRY_AFTER_SECONDS == 60

    @pytest.mark.parametrize("status", [400, 403, 404, 422])
    def test_other_4xx_is_terminal_api_error(self, status):
        error = classify(status, {}, {"message": "bad"})
        assert isinstance(error, ApiError)
        assert error.http_status == status
        assert error.retryable is False
        assert error.body == {"message": "bad"}

    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_5xx_is_retryable_api_error(self, status):
        error = classify(status, {}, None)
        assert isinstance(error, ApiError)
        assert error.retryable is True
        assert error.http_status == status

    def test_message_from_nested_crm_error(self):
        body = {"data": [{"code": "MANDATORY_NOT_FOUND", "message": "required field not found"}]}
        error = classify(400, {}, body)
        assert error.message == "required field not found"

    def test_message_falls_back_to_reason_phrase(self):
        error = classify(404, {}, None)
        assert error.message == "HTTP 404 Not Found"
        assert str(error) == "HTTP 404 Not Found (status 404)"


class TestClassifyResponse:
    def test_decodes_json_body(self):
        response = httpx.Response(400, json={"code": 1002, "message": "Invoice does not exist."})
        error = classify_response(response)
        assert isinstance(error, ApiError)
        assert error.message == "Invoice does not exist."

    def test_keeps_text_body(self):
        response = httpx.Response(502, text="<html>Bad Gateway</html>")
        error = classify_response(response)
        assert error.retryable is True
        assert error.body == "<html>Bad Gateway</html>"


class TestTransportErrors:
    @pytest.mark.parametrize(
        "exc",
        [httpx.ConnectTimeout("timed out"), httpx.ConnectError("dns failure"), httpx.ReadError("reset")],
    )
    def test_transport_failure_is_retryable_status_zero(self, exc):
        error = classify_transport_error(exc)
        assert isinstance(error, ApiError)
        assert error.http_status == 0
        assert error.retryable is True
        assert type(exc).__name__ in error.message


def test_parse_retry_after_accepts_fractional_seconds():
    assert parse_retry_after("1.5") == 1.5
    assert parse_retry_after(None) == 60


@pytest.mark.parametrize("value", ["inf", "-inf", "NaN", "Infinity", "1e400"])
def test_parse_retry_after_rejects_non_finite_values(value):
    assert parse_retry_after(value) == DEFAULT_RETRY_AFTER_SECONDS
