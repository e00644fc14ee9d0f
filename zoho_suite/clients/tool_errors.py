"""Turn the result of a Zoho call into the dict a tool handler returns to an agent.

Errors that survive all local recovery become ``{"success": False, ...}`` with the
structured detail needed to decide what to do next (retry later, re-authorize, fix
the request).
"""

from typing import Any

from zoho_suite.http.errors import ApiError, AuthError, ClassifiedError, RateLimitError, ValidationError
from zoho_suite.pagination.engine import PaginationCancelledError
from zoho_suite.utils.logging import get_logger

logger = get_logger(__name__)


def to_tool_error_response(error: BaseException, operation: str) -> dict[str, Any]:
    if isinstance(error, AuthError):
        return {
            "success": False,
            "operation": operation,
            "error": f"Authentication with Zoho failed: {error.message}",
            "error_type": "auth",
            "retryable": False,
            "next_steps": [
                "Verify ZOHO_CLIENT_ID, ZOHO_CLIENT_SECRET and ZOHO_REFRESH_TOKEN",
                "Generate a new refresh token if the grant was revoked",
                "Check that the configured data center matches the account",
            ],
        }

    if isinstance(error, RateLimitError):
        return {
            "success": False,
            "operation": operation,
            "error": f"Zoho rate limit exceeded: {error.message}",
            "error_type": "rate_limit",
            "retryable": True,
            "retry_after_seconds": error.retry_after_seconds,
            "next_steps": [
                f"Wait {error.retry_after_seconds:g} seconds before retrying",
                "Request fewer records per call or disable auto-pagination",
            ],
        }

    if isinstance(error, ValidationError):
        return {
            "success": False,
            "operation": operation,
            "error": f"Invalid request: {error.message}",
            "error_type": "validation",
            "retryable": False,
            "next_steps": ["Fix the request parameters and try again"],
        }

    if isinstance(error, ApiError):
        return {
            "success": False,
            "operation": operation,
            "error": str(error),
            "error_type": "api",
            "http_status": error.http_status,
            "retryable": error.retryable,
            "next_steps": _api_error_next_steps(error),
        }

    if isinstance(error, PaginationCancelledError):
        return {
            "success": False,
            "operation": operation,
            "error": str(error),
            "error_type": "cancelled",
            "retryable": True,
            "partial_records": len(error.partial.data),
            "next_steps": ["Run the listing again, or continue from the partial result"],
        }

    if isinstance(error, ClassifiedError):
        return {
            "success": False,
            "operation": operation,
            "error": error.message,
            "error_type": "zoho",
            "retryable": error.retryable,
            "next_steps": ["Check the request and try again"],
        }

    logger.error("Unexpected error in Zoho operation", operation=operation, error=repr(error))
    return {
        "success": False,
        "operation": operation,
        "error": f"Unexpected error: {error}",
        "error_type": "unknown",
        "retryable": False,
        "next_steps": ["Check the server logs for details"],
    }


def _api_error_next_steps(error: ApiError) -> list[str]:
    if error.http_status == 404:
        return ["Verify the record, module or department ID exists", "List records to find valid IDs"]
    if error.http_status == 400:
        return ["Check required fields and value formats", "Fetch field metadata for the module"]
    if error.http_status == 403:
        return ["The OAuth scopes do not cover this resource", "Re-authorize with the missing scope"]
    if error.retryable:
        return ["Zoho returned a transient error; retry shortly"]
    return ["Check the request and try again"]


def to_tool_success_response(
    data: Any,
    operation: str,
    suggestions: list[str] | None = None,
) -> dict[str, Any]:
    response: dict[str, Any] = {"success": True, "operation": operation, "data": data}
    if suggestions:
        response["suggestions"] = suggestions
    return response
