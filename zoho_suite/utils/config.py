"""Configuration utility for the Zoho suite access layer.

This module provides centralized configuration management with:
- Environment variables as the only source
- Type-safe access to configuration values
- A validated ``ZohoSettings`` model holding the OAuth seed values and data center
"""

import os
from typing import Any

from pydantic import BaseModel, Field, field_validator

# Regional deployments of the Zoho accounts and API servers
SUPPORTED_DATA_CENTERS = ("com", "eu", "in", "com.au", "jp", "com.cn", "ca", "sa")

DEFAULT_REDIRECT_URI = "http://localhost:3000/callback"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0

# env suffix -> PaginationConfig field
_PAGINATION_ENV_FIELDS = {
    "DEFAULT_PAGE_SIZE": "default_page_size",
    "MAX_PAGE_SIZE": "max_page_size",
    "ENABLE_AUTO_PAGINATION": "enable_auto_pagination",
    "RATE_LIMIT_DELAY_MS": "rate_limit_delay_ms",
    "MAX_RETRIES": "max_retries",
    "USE_PAGE_TOKENS": "use_page_tokens",
    "MAX_RECORDS_PER_BATCH": "max_records_per_batch",
}


def parse_config_value(value: str) -> str | bool | int | float:
    if value.lower() == "true":
        return True
    elif value.lower() == "false":
        return False
    else:
        # Try to parse as a number
        try:
            return int(value)
        except ValueError:
            try:
                return float(value)
            except ValueError:
                # Return as string
                return value


def get_config_value(key: str, default: Any = None) -> Any:
    """Get a configuration value from environment variables.

    Args:
        key: Configuration key name (e.g., "ZOHO_DATA_CENTER")
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    env_value = os.environ.get(key)
    if env_value is not None:
        return parse_config_value(env_value)

    return default


def get_config_value_str(key: str) -> str | None:
    """
    Get a configuration value from environment variables. But sometimes you just want a string.
    """
    return os.environ.get(key)


def require_config_value(key: str) -> str:
    value = os.environ.get(key)
    if value is None:
        raise ValueError(f"Environment variable {key} is required")
    return value


def get_zoho_environment() -> str:
    """Get deployment environment from env var."""
    return get_config_value("ZOHO_ENVIRONMENT", "local")


def get_product_base_url(product: str) -> str | None:
    """Explicit base URL for one product, bypassing the data-center template."""
    return get_config_value_str(f"ZOHO_{product.upper()}_BASE_URL")


def get_pagination_overrides(product: str) -> dict[str, Any]:
    """Collect ZOHO_<PRODUCT>_* pagination overrides set in the environment.

    Only keys that are present are returned, so the result can be merged over a
    product's defaults with ``PaginationConfig.with_overrides``.
    """
    overrides: dict[str, Any] = {}
    for suffix, field_name in _PAGINATION_ENV_FIELDS.items():
        value = get_config_value(f"ZOHO_{product.upper()}_{suffix}")
        if value is not None:
            overrides[field_name] = value
    return overrides


class ZohoSettings(BaseModel):
    """Seed values for the OAuth credential plus per-deployment settings."""

    client_id: str
    client_secret: str = Field(repr=False)
    refresh_token: str = Field(repr=False)
    data_center: str = "com"
    redirect_uri: str = DEFAULT_REDIRECT_URI
    scopes: list[str] = Field(default_factory=list)
    books_organization_id: str | None = None
    request_timeout_seconds: float = Field(default=DEFAULT_REQUEST_TIMEOUT_SECONDS, gt=0)

    @field_validator("data_center")
    @classmethod
    def _check_data_center(cls, value: str) -> str:
        value = value.strip().lower().lstrip(".")
        if value not in SUPPORTED_DATA_CENTERS:
            raise ValueError(
                f"Unsupported Zoho data center '{value}', expected one of {', '.join(SUPPORTED_DATA_CENTERS)}"
            )
        return value


def load_zoho_settings() -> ZohoSettings:
    """Build ZohoSettings from ZOHO_* environment variables.

    Raises:
        ValueError: If a required variable is missing
        pydantic.ValidationError: If a value is malformed (e.g. unknown data center)
    """
    scopes_raw = get_config_value_str("ZOHO_SCOPES") or ""

    return ZohoSettings(
        client_id=require_config_value("ZOHO_CLIENT_ID"),
        client_secret=require_config_value("ZOHO_CLIENT_SECRET"),
        refresh_token=require_config_value("ZOHO_REFRESH_TOKEN"),
        data_center=get_config_value_str("ZOHO_DATA_CENTER") or "com",
        redirect_uri=get_config_value_str("ZOHO_REDIRECT_URI") or DEFAULT_REDIRECT_URI,
        scopes=[scope.strip() for scope in scopes_raw.split(",") if scope.strip()],
        books_organization_id=get_config_value_str("ZOHO_BOOKS_ORGANIZATION_ID"),
        request_timeout_seconds=get_config_value(
            "ZOHO_REQUEST_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT_SECONDS
        ),
    )
