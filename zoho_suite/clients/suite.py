"""All four product clients wired to one TokenProvider."""

from typing import Any

import httpx
from aiolimiter import AsyncLimiter

from connectors.books import BOOKS_CONFIG, ZohoBooksClient
from connectors.crm import CRM_CONFIG, ZohoCrmClient
from connectors.desk import DESK_CONFIG, ZohoDeskClient
from connectors.people import PEOPLE_CONFIG, ZohoPeopleClient
from zoho_suite.auth.oauth_client import ZohoOauthClient
from zoho_suite.auth.oauth_models import Credential
from zoho_suite.auth.token_provider import TokenProvider
from zoho_suite.http.errors import ValidationError
from zoho_suite.utils.config import ZohoSettings, load_zoho_settings
from zoho_suite.utils.logging import get_logger

logger = get_logger(__name__)


class ZohoSuite:
    def __init__(
        self,
        token_provider: TokenProvider,
        crm: ZohoCrmClient,
        people: ZohoPeopleClient,
        desk: ZohoDeskClient,
        books: ZohoBooksClient | None = None,
    ):
        self.token_provider = token_provider
        self.crm = crm
        self.people = people
        self.desk = desk
        self._books = books

    @property
    def books(self) -> ZohoBooksClient:
        if self._books is None:
            raise ValidationError("Zoho Books is not configured; set ZOHO_BOOKS_ORGANIZATION_ID")
        return self._books

    @classmethod
    def from_settings(
        cls,
        settings: ZohoSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
        **client_kwargs: Any,
    ) -> "ZohoSuite":
        """Build the suite from settings (loaded from ZOHO_* env vars when omitted).

        Each product gets its own per-minute limiter, owned by this suite. ``client_kwargs``
        are passed to every product client, e.g. ``middlewares``, or a single ``limiter``
        to use for all of them.
        """
        settings = settings or load_zoho_settings()

        oauth_client = ZohoOauthClient(
            settings.data_center,
            settings.client_id,
            settings.client_secret,
            http_client=http_client,
            timeout_seconds=settings.request_timeout_seconds,
        )
        credential = Credential(
            refresh_token=settings.refresh_token,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
        )
        token_provider = TokenProvider(credential, oauth_client)

        shared_limiter = client_kwargs.pop("limiter", None)
        limiters = {
            config.product: shared_limiter or AsyncLimiter(config.requests_per_minute, 60)
            for config in (CRM_CONFIG, PEOPLE_CONFIG, DESK_CONFIG, BOOKS_CONFIG)
        }

        common: dict[str, Any] = {
            "data_center": settings.data_center,
            "http_client": http_client,
            "timeout_seconds": settings.request_timeout_seconds,
            **client_kwargs,
        }

        books = None
        if settings.books_organization_id:
            books = ZohoBooksClient(
                token_provider, settings.books_organization_id, limiter=limiters["books"], **common
            )
        else:
            logger.info("ZOHO_BOOKS_ORGANIZATION_ID not set, Zoho Books client disabled")

        logger.info("Zoho suite configured", data_center=settings.data_center, books_enabled=books is not None)
        return cls(
            token_provider,
            crm=ZohoCrmClient(token_provider, limiter=limiters["crm"], **common),
            people=ZohoPeopleClient(token_provider, limiter=limiters["people"], **common),
            desk=ZohoDeskClient(token_provider, limiter=limiters["desk"], **common),
            books=books,
        )

    async def __aenter__(self) -> "ZohoSuite":
        return self

    async def __aexit__(self, _exc_type: Any, _exc: Any, _tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        clients = [self.crm, self.people, self.desk]
        if self._books is not None:
            clients.append(self._books)
        for client in clients:
            await client.aclose()
        await self.token_provider.aclose()
