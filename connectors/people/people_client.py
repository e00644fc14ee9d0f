"""Zoho People binding.

API docs: https://www.zoho.com/people/api/overview.html

Records live under ``/forms/{form}/records``. Responses carry the records in
``response.result``, ``result`` or the bare body, and give no pagination hints at
all, so a short page is the only end-of-listing signal.
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
from zoho_suite.pagination.engine import CancellationToken
from zoho_suite.pagination.models import Page, PaginationConfig, PaginationResult
from zoho_suite.utils.rate_limiter import rate_limited
from zoho_suite.utils.ttl_cache import ttl_cache

# Modules that exist in every People account but are not always listed by /forms
COMMON_PEOPLE_MODULES: list[Record] = [
    {"api_name": "employees", "module_name": "Employees", "singular_label": "Employee"},
    {"api_name": "departments", "module_name": "Departments", "singular_label": "Department"},
    {"api_name": "attendance", "module_name": "Attendance", "singular_label": "Attendance"},
    {"api_name": "leave", "module_name": "Leave", "singular_label": "Leave Record"},
    {"api_name": "performance", "module_name": "Performance", "singular_label": "Performance Record"},
    {"api_name": "training", "module_name": "Training", "singular_label": "Training Record"},
]

# friendly module name -> form link name
_FORM_ALIASES = {
    "employees": "employee",
    "departments": "P_Department",
}


def extract_people_records(body: Any) -> list[Record]:
    if isinstance(body, list):
        return body
    if not isinstance(body, dict):
        return []

    response = body.get("response")
    if isinstance(response, dict) and isinstance(response.get("result"), list):
        return response["result"]
    if isinstance(body.get("result"), list):
        return body["result"]
    return []


def parse_people_page(body: Any, records_key: str) -> Page[Record]:
    return Page(records=extract_people_records(body))


PEOPLE_CONFIG = ProductConfig(
    product="people",
    display_name="Zoho People",
    version="api",
    dialect=PaginationDialect.PAGE_NUMBER,
    pagination=PaginationConfig(default_page_size=200, max_page_size=200, use_page_tokens=False),
    base_url_template="https://people.zoho.{data_center}/people/{version}",
    requests_per_minute=100,
    records_key="result",
    parse_page=parse_people_page,
)


def _form_name(module: str) -> str:
    require_param(module, "module")
    return _FORM_ALIASES.get(module, module)


class ZohoPeopleClient(ApiClient):
    def __init__(self, token_provider: AccessTokenSource, data_center: str = "com", **kwargs: Any):
        super().__init__(PEOPLE_CONFIG, token_provider, data_center=data_center, **kwargs)

    @ttl_cache()
    @rate_limited(max_retries=3, base_delay=2)
    async def get_modules(self) -> list[Record]:
        """Forms of the account, plus the standard modules /forms may leave out."""
        body = await self.get("forms")
        forms = body.get("forms", []) if isinstance(body, dict) else []

        modules = [
            {
                "api_name": form.get("form_name") or form.get("linkName"),
                "module_name": form.get("display_name") or form.get("form_name"),
                "singular_label": form.get("display_name") or form.get("form_name"),
            }
            for form in forms
        ]
        known = {module["api_name"] for module in modules}
        modules.extend(dict(module) for module in COMMON_PEOPLE_MODULES if module["api_name"] not in known)
        return modules

    @ttl_cache()
    @rate_limited(max_retries=3, base_delay=2)
    async def get_fields(self, module: str) -> list[Record]:
        body = await self.get(f"forms/{_form_name(module)}/fields")
        if isinstance(body, dict):
            return body.get("fields", [])
        return body if isinstance(body, list) else []

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
        page_size = self._check_page_size(per_page)
        return await self.list_records(
            f"forms/{_form_name(module)}/records",
            params={
                "fields": ",".join(fields) if fields else None,
                "sort_by": sort_by,
                "sort_order": sort_order,
            },
            page_size=page_size,
            max_records=max_records,
            start_offset=(max(page, 1) - 1) * page_size,
            auto_paginate=auto_paginate,
            cancellation=cancellation,
        )

    async def search_records(
        self,
        module: str,
        search_str: str,
        fields: Sequence[str] | None = None,
        page: int = 1,
        per_page: int | None = None,
    ) -> PaginationResult[Record]:
        require_param(search_str, "search_str")
        page_size = self._check_page_size(per_page)
        return await self.list_page(
            f"forms/{_form_name(module)}/records",
            params={"searchStr": search_str, "fields": ",".join(fields) if fields else None},
            page_size=page_size,
            start_offset=(max(page, 1) - 1) * page_size,
        )

    async def get_all_records(
        self,
        module: str,
        fields: Sequence[str] | None = None,
        search_str: str | None = None,
        per_page: int | None = None,
        max_records: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> PaginationResult[Record]:
        return await self.paginate(
            f"forms/{_form_name(module)}/records",
            params={"searchStr": search_str, "fields": ",".join(fields) if fields else None},
            page_size=per_page,
            max_records=max_records,
            cancellation=cancellation,
        )
