"""Owner of the Zoho access/refresh token pair.

One TokenProvider is constructed per process and passed to every product client.
Concurrent callers that need a refresh share one in-flight refresh task; the
accounts server is never asked for two tokens at once.
"""

import asyncio
from datetime import timedelta

from zoho_suite.auth.oauth_client import ZohoOauthClient
from zoho_suite.auth.oauth_models import Credential
from zoho_suite.http.errors import ClassifiedError
from zoho_suite.utils.logging import get_logger, redact_token

logger = get_logger(__name__)

TOKEN_REFRESH_MARGIN = timedelta(seconds=60)


class TokenProvider:
    def __init__(
        self,
        credential: Credential,
        oauth_client: ZohoOauthClient,
        refresh_margin: timedelta = TOKEN_REFRESH_MARGIN,
    ):
        self._credential = credential
        self._oauth_client = oauth_client
        self._refresh_margin = refresh_margin
        self._refresh_task: asyncio.Task[str] | None = None

    @property
    def credential(self) -> Credential:
        return self._credential

    async def aclose(self) -> None:
        await self._oauth_client.aclose()

    async def get_valid_access_token(self) -> str:
        """Cached access token if it outlives the safety margin, otherwise a fresh one.

        Raises:
            AuthError: The refresh token was rejected
        """
        credential = self._credential
        if credential.is_valid(self._refresh_margin) and credential.access_token:
            return credential.access_token

        return await self.refresh_access_token()

    async def refresh_access_token(self, stale_token: str | None = None) -> str:
        """Exchange the refresh token for a new access token.

        Callers arriving while a refresh is in flight attach to it instead of starting
        another. ``stale_token`` is the token a caller just saw rejected; if the cached
        token has already moved past it, that newer token is returned without a refresh.

        Raises:
            AuthError: The refresh token was rejected
        """
        if self._refresh_task is None and stale_token is not None:
            current = self._credential
            if (
                current.access_token
                and current.access_token != stale_token
                and current.is_valid(self._refresh_margin)
            ):
                return current.access_token

        if self._refresh_task is None:
            self._refresh_task = asyncio.create_task(self._refresh())
            self._refresh_task.add_done_callback(self._on_refresh_done)

        # shield: a cancelled caller must not cancel the refresh other callers wait on
        return await asyncio.shield(self._refresh_task)

    async def _refresh(self) -> str:
        credential = self._credential
        logger.info(
            "Refreshing Zoho access token",
            client_id=credential.client_id,
            expires_at=credential.expires_at,
        )

        try:
            token_response = await self._oauth_client.refresh(credential.refresh_token)
        except ClassifiedError as e:
            logger.error("Zoho access token refresh failed", error=str(e))
            raise

        # single assignment; readers see either the old or the new credential
        self._credential = credential.refreshed(token_response)

        logger.info(
            "Zoho access token refreshed",
            token_preview=redact_token(self._credential.access_token),
            expires_at=self._credential.expires_at,
        )
        return token_response.access_token

    def _on_refresh_done(self, task: asyncio.Task[str]) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        # awaiting callers re-raise the failure; mark it retrieved for the case nobody is left
        if not task.cancelled():
            task.exception()
