from zoho_suite.clients.tool_errors import to_tool_error_response, to_tool_success_response
from zoho_suite.http.errors import ApiError, AuthError, RateLimitError, ValidationError
from zoho_suite.pagination.engine import PaginationCancelledError
from zoho_suite.pagination.models import PaginationResult


class TestToolErrorResponse:
    def test_auth_error(self):
        response = to_tool_error_response(AuthError("invalid oauth token"), "list_leads")

        assert response["success"] is False
        assert response["error_type"] == "auth"
        assert response["operation"] == "list_leads"
        assert "invalid oauth token" in response["error"]
        assert any("ZOHO_REFRESH_TOKEN" in step for step in response["next_steps"])

    def test_rate_limit_includes_wait(self):
        response = to_tool_error_response(RateLimitError(retry_after_seconds=30), "list_invoices")

        assert response["error_type"] == "rate_limit"
        assert response["retry_after_seconds"] == 30
        assert response["retryable"] is True
        assert response["next_steps"][0] == "Wait 30 seconds before retrying"

    def test_not_found(self):
        response = to_tool_error_response(ApiError("record not found", http_status=404), "get_deal")

        assert response["http_status"] == 404
        assert response["retryable"] is False
        assert "Verify" in response["next_steps"][0]

    def test_forbidden_points_at_scopes(self):
        response = to_tool_error_response(ApiError("no permission", http_status=403), "get_deal")

        assert "scopes" in response["next_steps"][0]

    def test_transient_api_error(self):
        response = to_tool_error_response(
            ApiError("Service Unavailable", http_status=503, retryable=True), "list_tickets"
        )

        assert response["retryable"] is True
        assert response["error"] == "Service Unavailable (status 503)"

    def test_validation_error(self):
        response = to_tool_error_response(ValidationError("module is required"), "list_records")

        assert response["error_type"] == "validation"
        assert response["error"] == "Invalid request: module is required"

    def test_cancelled_sweep(self):
        partial = PaginationResult(data=[1, 2, 3], total_records=3, has_more=True, current_page=1, request_count=1)
        response = to_tool_error_response(PaginationCancelledError(partial), "export")

        assert response["error_type"] == "cancelled"
        assert response["partial_records"] == 3

    def test_unexpected_exception(self):
        response = to_tool_error_response(KeyError("boom"), "list_leads")

        assert response["error_type"] == "unknown"
        assert response["success"] is False


def test_success_response():
    assert to_tool_success_response({"id": "1"}, "get_deal") == {
        "success": True,
        "operation": "get_deal",
        "data": {"id": "1"},
    }
    response = to_tool_success_response([], "list_deals", suggestions=["Try a broader search"])
    assert response["suggestions"] == ["Try a broader search"]
