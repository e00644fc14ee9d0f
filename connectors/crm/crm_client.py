"""Zoho CRM binding.

API docs: https://www.zoho.com/crm/developer/docs/api/v8/

Listing responses wrap records under ``data`` and pagination under
``info{more_records, next_page_token, page, per_page, count}``. Past the first 2000
records CRM only continues by ``page_token``, so token continuation is on by default.
"""

from collections.abc import Sequence
from typing import Any

from zoho_suite.clients.api_client import (
    ApiClient,
    PaginationDialect,
    ProductConfig,
    Record,
    require_param,
)
from zoho_suite.http.dispatcher import AccessTokenSource
from zoho_suite.http.errors import ApiError, ValidationError
from zoho_suite.pagination.engine import CancellationToken
from zoho_suite.pagination.models import Page, PaginationConfig, PaginationResult
from zoho_suite.utils.rate_limiter import rate_limited
from zoho_suite.utils.ttl_cache import ttl_cache


def parse_crm_page(body: Any, records_key: str) -> Page[Record]:
    if not isinstance(body, dict):
        # non-JSON body
        return Page(records=[], has_more_hint=False)

    info = body.get("info") or {}
    return Page(
        records=list(body.get(records_key) or []),
        has_more_hint=info.get("more_records"),
        next_cursor=info.get("next_page_token"),
    )


CRM_CONFIG = ProductConfig(
    product="crm",
    display_name="Zoho CRM",
    version="v8",
    dialect=PaginationDialect.PAGE_NUMBER,
    pagination=PaginationConfig(default_page_size=200, max_page_size=200, use_page_tokens=True),
    base_url_template="https://www.zohoapis.{data_center}/crm/{version}",
    requests_per_minute=100,
    parse_page=parse_crm_page,
)


def _join(values: Sequence[str] | None) -> str | None:
    return ",".join(values) if values else None


def _first_detail(body: Any, operation: str) -> Record:
    """Unwrap ``{"data": [{"code", "status", "details", "message"}]}`` from a write call."""
    entries = body.get("data") if isinstance(body, dict) else None
    if not entries:
        raise ApiError(f"Empty response from CRM {operation}", http_status=200, body=body)

    entry = entries[0]
    if entry.get("status") == "error":
        raise ApiError(
            f"CRM {operation} failed: {entry.get('message') or entry.get('code')}",
            http_status=400,
            body=body,
        )
    return entry.get("details") or {}


class ZohoCrmClient(ApiClient):
    def __init__(self, token_provider: AccessTokenSource, data_center: str = "com", **kwargs: Any):
        super().__init__(CRM_CONFIG, token_provider, data_center=data_center, **kwargs)

    @ttl_cache()
    @rate_limited(max_retries=3, base_delay=2)
    async def get_modules(self) -> list[Record]:
        body = await self.get("settings/modules")
        return body.get("modules", [])

    async def get_module_metadata(self, module: str) -> Record:
        require_param(module, "module")
        body = await self.get(f"settings/modules/{module}")
        modules = body.get("modules") or [{}]
        return modules[0]

    @ttl_cache()
    @rate_limited(max_retries=3, base_delay=2)
    async def get_fields(self, module: str) -> list[Record]:
        require_param(module, "module")
        body = await self.get("settings/fields", query={"module": module})
        return body.get("fields", [])

    async def get_users(self, user_type: str | None = None) -> list[Record]:
        body = await self.get("users", query={"type": user_type})
        return body.get("users", [])

    async def get_organization(self) -> Record:
        body = await self.get("org")
        orgs = body.get("org") or [{}]
        return orgs[0]

    async def get_records(
        self,
        module: str,
        fields: Sequence[str] | None = None,
        page: int = 1,
        per_page: int | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
        auto_paginate: bool = False,
        max_records: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> PaginationResult[Record]:
        require_param(module, "module")
        page_size = self._check_page_size(per_page)
        return await self.list_records(
            module,
            params={"fields": _join(fields), "sort_by": sort_by, "sort_order": sort_order},
            page_size=page_size,
            max_records=max_records,
            start_offset=(max(page, 1) - 1) * page_size,
            auto_paginate=auto_paginate,
            cancellation=cancellation,
        )

    async def get_records_by_token(
        self,
        module: str,
        page_token: str,
        fields: Sequence[str] | None = None,
        per_page: int | None = None,
        skip_records: int = 0,
    ) -> PaginationResult[Record]:
        """Continue a listing from the ``next_page_token`` (and ``next_page_skip``) of a previous result."""
        require_param(module, "module")
        require_param(page_token, "page_token")
        return await self.list_page(
            module,
            params={"fields": _join(fields)},
            page_size=per_page,
            page_token=page_token,
            skip_records=skip_records,
        )

    async def get_all_records(
        self,
        module: str,
        fields: Sequence[str] | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
        per_page: int | None = None,
        max_records: int | None = None,
        cancellation: CancellationToken | None = None,
        page_token: str | None = None,
        skip_records: int = 0,
    ) -> PaginationResult[Record]:
        require_param(module, "module")
        return await self.paginate(
            module,
            params={"fields": _join(fields), "sort_by": sort_by, "sort_order": sort_order},
            page_size=per_page,
            max_records=max_records,
            cancellation=cancellation,
            page_token=page_token,
            skip_records=skip_records,
        )

    async def get_record(self, module: str, record_id: str) -> Record:
        require_param(module, "module")
        require_param(record_id, "record_id")
        body = await self.get(f"{module}/{record_id}")
        records = body.get("data") or []
        if not records:
            raise ApiError(f"Record {record_id} not found in {module}", http_status=404, body=body)
        return records[0]

    async def create_record(self, module: str, data: Record) -> Record:
        require_param(module, "module")
        body = await self.post(module, body={"data": [data]})
        return _first_detail(body, f"create in {module}")

    async def update_record(self, module: str, record_id: str, data: Record) -> Record:
        require_param(module, "module")
        require_param(record_id, "record_id")
        body = await self.put(f"{module}/{record_id}", body={"data": [{"id": record_id, **data}]})
        return _first_detail(body, f"update of {module}/{record_id}")

    async def delete_record(self, module: str, record_id: str) -> Record:
        require_param(module, "module")
        require_param(record_id, "record_id")
        body = await self.delete(f"{module}/{record_id}")
        return _first_detail(body, f"delete of {module}/{record_id}")

    @staticmethod
    def _search_params(
        criteria: str | None,
        word: str | None,
        email: str | None,
        phone: str | None,
        fields: Sequence[str] | None,
    ) -> dict[str, Any]:
        if not any((criteria, word, email, phone)):
            raise ValidationError("One of criteria, word, email or phone is required to search")
        return {"criteria": criteria, "word": word, "email": email, "phone": phone, "fields": _join(fields)}

    async def search_records(
        self,
        module: str,
        criteria: str | None = None,
        word: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        fields: Sequence[str] | None = None,
        page: int = 1,
        per_page: int | None = None,
    ) -> PaginationResult[Record]:
        """One page of ``/{module}/search``; ``criteria`` uses CRM syntax, e.g. ``(Last_Name:equals:Smith)``."""
        require_param(module, "module")
        page_size = self._check_page_size(per_page)
        return await self.list_page(
            f"{module}/search",
            params=self._search_params(criteria, word, email, phone, fields),
            page_size=page_size,
            start_offset=(max(page, 1) - 1) * page_size,
        )

    async def search_all_records(
        self,
        module: str,
        criteria: str | None = None,
        word: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        fields: Sequence[str] | None = None,
        per_page: int | None = None,
        max_records: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> PaginationResult[Record]:
        require_param(module, "module")
        return await self.paginate(
            f"{module}/search",
            params=self._search_params(criteria, word, email, phone, fields),
            page_size=per_page,
            max_records=max_records,
            cancellation=cancellation,
        )

    async def get_related_records(
        self,
        module: str,
        record_id: str,
        related_module: str,
        fields: Sequence[str] | None = None,
        page: int = 1,
        per_page: int | None = None,
    ) -> PaginationResult[Record]:
        require_param(module, "module")
        require_param(record_id, "record_id")
        require_param(related_module, "related_module")
        page_size = self._check_page_size(per_page)
        return await self.list_page(
            f"{module}/{record_id}/{related_module}",
            params={"fields": _join(fields)},
            page_size=page_size,
            start_offset=(max(page, 1) - 1) * page_size,
        )
