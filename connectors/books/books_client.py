"""Zoho Books binding.

API docs: https://www.zoho.com/books/api/v3/

Every Books request is scoped to one organization through the ``organization_id``
query parameter. Listing responses carry records under a resource-named key
(``contacts``, ``invoices``, ``items``) and pagination under
``page_context{page, per_page, has_more_page}``.
"""

from collections.abc import Sequence
from typing import Any

import httpx

from zoho_suite.clients.api_client import (
    ApiClient,
    PaginationDialect,
    ProductConfig,
    Record,
    require_param,
)
from zoho_suite.http.dispatcher import AccessTokenSource, Handler, Middleware, RequestContext
from zoho_suite.http.errors import ApiError, ValidationError, classify_response
from zoho_suite.http.middleware import static_query_middleware
from zoho_suite.pagination.engine import CancellationToken
from zoho_suite.pagination.models import Page, PaginationConfig, PaginationResult

# resource path -> (listing key, single-record key)
BOOKS_RESOURCES: dict[str, tuple[str, str]] = {
    "contacts": ("contacts", "contact"),
    "invoices": ("invoices", "invoice"),
    "items": ("items", "item"),
    "estimates": ("estimates", "estimate"),
    "customerpayments": ("customerpayments", "payment"),
    "creditnotes": ("creditnotes", "creditnote"),
    "salesorders": ("salesorders", "salesorder"),
}


def parse_books_page(body: Any, records_key: str) -> Page[Record]:
    if not isinstance(body, dict):
        return Page(records=[])

    page_context = body.get("page_context") or {}
    return Page(
        records=list(body.get(records_key) or []),
        has_more_hint=page_context.get("has_more_page"),
        total_count=page_context.get("total"),
    )


BOOKS_CONFIG = ProductConfig(
    product="books",
    display_name="Zoho Books",
    version="v3",
    dialect=PaginationDialect.PAGE_NUMBER,
    pagination=PaginationConfig(default_page_size=200, max_page_size=200),
    base_url_template="https://www.zohoapis.{data_center}/books/{version}",
    requests_per_minute=100,
    parse_page=parse_books_page,
)


async def organization_id_error_middleware(ctx: RequestContext, call_next: Handler) -> httpx.Response:
    """Point at the organization id when Books rejects the company scope."""
    response = await call_next(ctx)
    if response.is_client_error and response.status_code != httpx.codes.UNAUTHORIZED:
        error = classify_response(response)
        if "CompanyID/CompanyName" in error.message:
            raise ApiError(
                f"Organization ID validation failed: {error.message}. "
                "Verify ZOHO_BOOKS_ORGANIZATION_ID for this account.",
                http_status=response.status_code,
                body=getattr(error, "body", None),
            )
    return response


def _resource_keys(resource: str) -> tuple[str, str]:
    keys = BOOKS_RESOURCES.get(resource)
    if keys is None:
        raise ValidationError(
            f"Unknown Books resource '{resource}', expected one of {', '.join(BOOKS_RESOURCES)}"
        )
    return keys


class ZohoBooksClient(ApiClient):
    def __init__(
        self,
        token_provider: AccessTokenSource,
        organization_id: str | None,
        data_center: str = "com",
        middlewares: Sequence[Middleware] = (),
        **kwargs: Any,
    ):
        if not organization_id:
            raise ValidationError("Zoho Books requires an organization id (ZOHO_BOOKS_ORGANIZATION_ID)")

        self.organization_id = organization_id
        super().__init__(
            BOOKS_CONFIG,
            token_provider,
            data_center=data_center,
            middlewares=[
                static_query_middleware({"organization_id": organization_id}),
                organization_id_error_middleware,
                *middlewares,
            ],
            **kwargs,
        )

    async def list_resource(
        self,
        resource: str,
        filters: dict[str, Any] | None = None,
        page: int = 1,
        per_page: int | None = None,
        sort_column: str | None = None,
        sort_order: str | None = None,
        auto_paginate: bool = False,
        max_records: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> PaginationResult[Record]:
        """List contacts, invoices, items, etc. ``sort_order`` is ``A`` or ``D``."""
        records_key, _ = _resource_keys(resource)
        page_size = self._check_page_size(per_page)
        return await self.list_records(
            resource,
            params={**(filters or {}), "sort_column": sort_column, "sort_order": sort_order},
            records_key=records_key,
            page_size=page_size,
            max_records=max_records,
            start_offset=(max(page, 1) - 1) * page_size,
            auto_paginate=auto_paginate,
            cancellation=cancellation,
        )

    async def list_all(
        self,
        resource: str,
        filters: dict[str, Any] | None = None,
        per_page: int | None = None,
        max_records: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> PaginationResult[Record]:
        records_key, _ = _resource_keys(resource)
        return await self.paginate(
            resource,
            params=filters,
            records_key=records_key,
            page_size=per_page,
            max_records=max_records,
            cancellation=cancellation,
        )

    async def get_entity(self, resource: str, entity_id: str) -> Record:
        _, single_key = _resource_keys(resource)
        require_param(entity_id, "entity_id")
        body = await self.get(f"{resource}/{entity_id}")
        return body.get(single_key, {})

    async def create_entity(self, resource: str, data: Record) -> Record:
        _, single_key = _resource_keys(resource)
        body = await self.post(resource, body=data)
        return body.get(single_key, {})

    async def update_entity(self, resource: str, entity_id: str, data: Record) -> Record:
        _, single_key = _resource_keys(resource)
        require_param(entity_id, "entity_id")
        body = await self.put(f"{resource}/{entity_id}", body=data)
        return body.get(single_key, {})

    async def delete_entity(self, resource: str, entity_id: str) -> None:
        _resource_keys(resource)
        require_param(entity_id, "entity_id")
        await self.delete(f"{resource}/{entity_id}")

    # Contacts (customers and vendors)

    async def get_contacts(self, **kwargs: Any) -> PaginationResult[Record]:
        return await self.list_resource("contacts", **kwargs)

    async def get_contact(self, contact_id: str) -> Record:
        return await self.get_entity("contacts", contact_id)

    async def create_contact(self, data: Record) -> Record:
        return await self.create_entity("contacts", data)

    async def update_contact(self, contact_id: str, data: Record) -> Record:
        return await self.update_entity("contacts", contact_id, data)

    async def delete_contact(self, contact_id: str) -> None:
        await self.delete_entity("contacts", contact_id)

    # Invoices

    async def get_invoices(self, **kwargs: Any) -> PaginationResult[Record]:
        return await self.list_resource("invoices", **kwargs)

    async def get_invoice(self, invoice_id: str) -> Record:
        return await self.get_entity("invoices", invoice_id)

    async def create_invoice(self, data: Record) -> Record:
        return await self.create_entity("invoices", data)

    async def update_invoice(self, invoice_id: str, data: Record) -> Record:
        return await self.update_entity("invoices", invoice_id, data)

    async def delete_invoice(self, invoice_id: str) -> None:
        await self.delete_entity("invoices", invoice_id)

    async def email_invoice(self, invoice_id: str, to_addresses: list[str], subject: str, body: str) -> None:
        require_param(invoice_id, "invoice_id")
        if not to_addresses:
            raise ValidationError("to_addresses must not be empty")
        await self.post(
            f"invoices/{invoice_id}/email",
            body={"to_mail_ids": to_addresses, "subject": subject, "body": body},
        )

    # Items

    async def get_items(self, **kwargs: Any) -> PaginationResult[Record]:
        return await self.list_resource("items", **kwargs)

    async def get_item(self, item_id: str) -> Record:
        return await self.get_entity("items", item_id)

    async def create_item(self, data: Record) -> Record:
        return await self.create_entity("items", data)

    async def update_item(self, item_id: str, data: Record) -> Record:
        return await self.update_entity("items", item_id, data)

    async def delete_item(self, item_id: str) -> None:
        await self.delete_entity("items", item_id)

    async def mark_item_active(self, item_id: str) -> None:
        require_param(item_id, "item_id")
        await self.post(f"items/{item_id}/active")

    async def mark_item_inactive(self, item_id: str) -> None:
        require_param(item_id, "item_id")
        await self.post(f"items/{item_id}/inactive")
