"""Client for the Zoho accounts server (https://accounts.zoho.{data_center}).

Only the token endpoints live here; product API calls go through RequestDispatcher.

OAuth docs: https://www.zoho.com/accounts/protocol/oauth.html
"""

from typing import Any
from urllib.parse import urlencode

import httpx

from zoho_suite.auth.oauth_models import ZohoTokenResponse
from zoho_suite.http.errors import (
    AuthError,
    ClassifiedError,
    classify_response,
    classify_transport_error,
)
from zoho_suite.utils.config import DEFAULT_REQUEST_TIMEOUT_SECONDS
from zoho_suite.utils.logging import get_logger

logger = get_logger(__name__)


class ZohoOauthClient:
    def __init__(
        self,
        data_center: str,
        client_id: str,
        client_secret: str,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
    ):
        self.base_url = f"https://accounts.zoho.{data_center}"
        self._client_id = client_id
        self._client_secret = client_secret

        self._timeout = httpx.Timeout(timeout_seconds)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            headers={"Accept": "application/json"}, timeout=self._timeout
        )

    async def __aenter__(self) -> "ZohoOauthClient":
        return self

    async def __aexit__(self, _exc_type: Any, _exc: Any, _tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def authorization_url(self, scopes: list[str], redirect_uri: str) -> str:
        """URL the operator visits once to grant offline access and obtain a code."""
        params = {
            "client_id": self._client_id,
            "response_type": "code",
            "scope": ",".join(scopes),
            "redirect_uri": redirect_uri,
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{self.base_url}/oauth/v2/auth?{urlencode(params)}"

    async def exchange_code(self, code: str, redirect_uri: str) -> ZohoTokenResponse:
        """Exchange an authorization code for an access/refresh token pair."""
        data = await self._post_token_endpoint(
            "/oauth/v2/token",
            {
                "grant_type": "authorization_code",
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "redirect_uri": redirect_uri,
                "code": code,
            },
            action="exchange code for tokens",
        )
        return ZohoTokenResponse.model_validate(data)

    async def refresh(self, refresh_token: str) -> ZohoTokenResponse:
        """Refresh the OAuth access token using the refresh token.

        Raises:
            AuthError: The refresh token was rejected; re-authorization is required
            ApiError: Accounts server unavailable (retryable)
        """
        if not refresh_token:
            raise AuthError("No refresh token available")

        data = await self._post_token_endpoint(
            "/oauth/v2/token",
            {
                "grant_type": "refresh_token",
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "refresh_token": refresh_token,
            },
            action="refresh access token",
        )
        return ZohoTokenResponse.model_validate(data)

    async def revoke(self, token: str) -> None:
        await self._post_token_endpoint(
            "/oauth/v2/token/revoke", {"token": token}, action="revoke token"
        )

    async def token_info(self, token: str) -> bool:
        """Whether the accounts server still recognizes ``token``."""
        try:
            data = await self._post_token_endpoint(
                "/oauth/v2/token/info", {"token": token}, action="validate token"
            )
        except ClassifiedError as e:
            logger.info("Zoho token validation failed", error=str(e))
            return False
        return bool(data.get("scope"))

    async def _post_token_endpoint(
        self, path: str, form: dict[str, str], action: str
    ) -> dict[str, Any]:
        try:
            response = await self._client.post(
                f"{self.base_url}{path}",
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self._timeout,
            )
        except httpx.TransportError as e:
            raise classify_transport_error(e) from e

        # accounts server caps refreshes per client; 429 keeps its retry hint
        if response.is_server_error or response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            raise classify_response(response)

        if response.is_client_error:
            error = classify_response(response)
            raise AuthError(f"Failed to {action}: {error.message}", body=getattr(error, "body", None))

        data = response.json() if response.content else {}
        # Zoho answers a rejected grant with 200 and {"error": "invalid_code"}
        if isinstance(data, dict) and data.get("error"):
            raise AuthError(f"Failed to {action}: {data['error']}", body=data)

        return data
