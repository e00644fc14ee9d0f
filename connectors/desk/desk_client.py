"""Zoho Desk binding.

API docs: https://desk.zoho.com/DeskAPIDocument

Desk pages by offset (``from``/``limit``, limit at most 100) and scopes entities
(tickets, contacts, accounts, ...) to a department. Listings return ``{"data": [...]}``
with no pagination hints.
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
from zoho_suite.http.errors import ApiError
from zoho_suite.pagination.engine import CancellationToken
from zoho_suite.pagination.models import PaginationConfig, PaginationResult
from zoho_suite.utils.logging import get_logger
from zoho_suite.utils.rate_limiter import rate_limited
from zoho_suite.utils.ttl_cache import ttl_cache

logger = get_logger(__name__)

DESK_CONFIG = ProductConfig(
    product="desk",
    display_name="Zoho Desk",
    version="v1",
    dialect=PaginationDialect.OFFSET,
    pagination=PaginationConfig(default_page_size=100, max_page_size=100),
    requests_per_minute=100,
)


def _join(values: Sequence[str] | None) -> str | None:
    return ",".join(values) if values else None


def _entity_path(department_id: str, entity_type: str, *parts: str) -> str:
    require_param(department_id, "department_id")
    require_param(entity_type, "entity_type")
    return "/".join(["departments", department_id, entity_type, *parts])


class ZohoDeskClient(ApiClient):
    def __init__(self, token_provider: AccessTokenSource, data_center: str = "com", **kwargs: Any):
        super().__init__(DESK_CONFIG, token_provider, data_center=data_center, **kwargs)

    @ttl_cache()
    @rate_limited(max_retries=3, base_delay=2)
    async def get_departments(self) -> list[Record]:
        body = await self.get("departments")
        return body.get("data", [])

    async def get_department(self, department_id: str) -> Record:
        require_param(department_id, "department_id")
        return await self.get(f"departments/{department_id}")

    @ttl_cache()
    @rate_limited(max_retries=3, base_delay=2)
    async def get_entity_fields(self, department_id: str, entity_type: str) -> list[Record]:
        """Fields from the first layout, falling back to the plain fields endpoint."""
        body = await self.get(_entity_path(department_id, entity_type, "layouts"))
        layouts = body.get("data") or []
        if layouts:
            sections = layouts[0].get("sections") or []
            return [field for section in sections for field in section.get("fields") or []]

        try:
            body = await self.get(_entity_path(department_id, entity_type, "fields"))
        except ApiError as e:
            if e.retryable:
                raise
            logger.info(
                "No field metadata for Desk entity",
                department_id=department_id,
                entity_type=entity_type,
                error=str(e),
            )
            return []
        return body.get("data", [])

    @staticmethod
    def _search_params(
        search_str: str | None,
        email: str | None,
        phone: str | None,
        view_id: str | None,
        sort_by: str | None,
        fields: Sequence[str] | None,
        include: Sequence[str] | None,
    ) -> dict[str, Any]:
        return {
            "searchStr": search_str,
            "email": email,
            "phone": phone,
            "viewId": view_id,
            "sortBy": sort_by,
            "fields": _join(fields),
            "include": _join(include),
        }

    async def search_entities(
        self,
        department_id: str,
        entity_type: str,
        search_str: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        view_id: str | None = None,
        sort_by: str | None = None,
        fields: Sequence[str] | None = None,
        include: Sequence[str] | None = None,
        limit: int | None = None,
        from_index: int = 0,
        auto_paginate: bool = False,
        max_records: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> PaginationResult[Record]:
        return await self.list_records(
            _entity_path(department_id, entity_type),
            params=self._search_params(search_str, email, phone, view_id, sort_by, fields, include),
            page_size=limit,
            max_records=max_records,
            start_offset=from_index,
            auto_paginate=auto_paginate,
            cancellation=cancellation,
        )

    async def get_all_entities(
        self,
        department_id: str,
        entity_type: str,
        search_str: str | None = None,
        view_id: str | None = None,
        sort_by: str | None = None,
        fields: Sequence[str] | None = None,
        include: Sequence[str] | None = None,
        limit: int | None = None,
        from_index: int = 0,
        max_records: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> PaginationResult[Record]:
        return await self.paginate(
            _entity_path(department_id, entity_type),
            params=self._search_params(search_str, None, None, view_id, sort_by, fields, include),
            page_size=limit,
            max_records=max_records,
            start_offset=from_index,
            cancellation=cancellation,
        )

    async def get_entity(
        self,
        department_id: str,
        entity_type: str,
        record_id: str,
        fields: Sequence[str] | None = None,
        include: Sequence[str] | None = None,
    ) -> Record:
        require_param(record_id, "record_id")
        return await self.get(
            _entity_path(department_id, entity_type, record_id),
            query={"fields": _join(fields), "include": _join(include)},
        )

    async def get_entity_activities(
        self,
        department_id: str,
        entity_type: str,
        record_id: str,
        limit: int | None = None,
        from_index: int = 0,
        include: Sequence[str] | None = None,
    ) -> PaginationResult[Record]:
        require_param(record_id, "record_id")
        return await self.list_page(
            _entity_path(department_id, entity_type, record_id, "activities"),
            params={"include": _join(include)},
            page_size=limit,
            start_offset=from_index,
        )

    async def create_entity(self, department_id: str, entity_type: str, data: Record) -> Record:
        return await self.post(_entity_path(department_id, entity_type), body=data)

    async def update_entity(self, department_id: str, entity_type: str, record_id: str, data: Record) -> Record:
        require_param(record_id, "record_id")
        return await self.patch(_entity_path(department_id, entity_type, record_id), body=data)

    async def delete_entity(self, department_id: str, entity_type: str, record_id: str) -> None:
        require_param(record_id, "record_id")
        await self.delete(_entity_path(department_id, entity_type, record_id))
