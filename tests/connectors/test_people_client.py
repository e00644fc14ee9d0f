"""Tests for the Zoho People binding."""

import httpx
import pytest
from aiolimiter import AsyncLimiter

from connectors.people import COMMON_PEOPLE_MODULES, ZohoPeopleClient, extract_people_records
from zoho_suite.http.errors import ValidationError


class _MockTransport(httpx.AsyncBaseTransport):
    def __init__(self, responses: list[httpx.Response]) -> None:
        self._responses = responses
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            raise RuntimeError("No mock responses left")
        return self._responses.pop(0)


class StaticTokenProvider:
    async def get_valid_access_token(self) -> str:
        return "token"

    async def refresh_access_token(self, stale_token: str | None = None) -> str:
        return "token"


def _client(responses: list[httpx.Response]) -> tuple[ZohoPeopleClient, _MockTransport]:
    transport = _MockTransport(responses)
    client = ZohoPeopleClient(
        StaticTokenProvider(),
        data_center="in",
        http_client=httpx.AsyncClient(transport=transport),
        limiter=AsyncLimiter(10_000, 1),
    )
    return client, transport


@pytest.fixture
def sleeps(monkeypatch):
    recorded: list[float] = []

    async def fake_sleep(delay: float):
        recorded.append(delay)

    monkeypatch.setattr("zoho_suite.pagination.engine.asyncio.sleep", fake_sleep)
    return recorded


class TestExtractRecords:
    def test_nested_response_result(self):
        assert extract_people_records({"response": {"result": [{"a": 1}], "status": 0}}) == [{"a": 1}]

    def test_top_level_result(self):
        assert extract_people_records({"result": [{"a": 1}]}) == [{"a": 1}]

    def test_bare_list(self):
        assert extract_people_records([{"a": 1}]) == [{"a": 1}]

    def test_unrecognized(self):
        assert extract_people_records({"response": {"message": "No records"}}) == []


@pytest.mark.asyncio
async def test_records_endpoint_and_alias():
    client, transport = _client([httpx.Response(200, json={"response": {"result": [{"EmployeeID": "E1"}]}})])

    result = await client.get_records("employees", fields=["EmployeeID", "EmailID"])

    request = transport.requests[0]
    assert str(request.url).startswith("https://people.zoho.in/people/api/forms/employee/records")
    assert request.url.params["fields"] == "EmployeeID,EmailID"
    assert request.url.params["page"] == "1"
    assert result.data == [{"EmployeeID": "E1"}]
    assert result.has_more is False


@pytest.mark.asyncio
async def test_sweep_relies_on_short_page(sleeps):
    client, transport = _client(
        [
            httpx.Response(200, json={"response": {"result": [{"id": 1}, {"id": 2}]}}),
            httpx.Response(200, json={"response": {"result": [{"id": 3}, {"id": 4}]}}),
            httpx.Response(200, json={"response": {"result": [{"id": 5}]}}),
        ]
    )

    result = await client.get_all_records("leave", per_page=2)

    assert [r["id"] for r in result.data] == [1, 2, 3, 4, 5]
    assert [r.url.params["page"] for r in transport.requests] == ["1", "2", "3"]
    assert "page_token" not in transport.requests[1].url.params


@pytest.mark.asyncio
async def test_search_requires_search_string():
    client, _ = _client([])

    with pytest.raises(ValidationError):
        await client.search_records("employees", "")


@pytest.mark.asyncio
async def test_search_sends_search_str():
    client, transport = _client([httpx.Response(200, json={"result": []})])

    await client.search_records("employees", "EmailID|john@example.com")

    assert transport.requests[0].url.params["searchStr"] == "EmailID|john@example.com"


@pytest.mark.asyncio
async def test_modules_merge_forms_with_common_modules():
    client, transport = _client(
        [
            httpx.Response(
                200,
                json={
                    "forms": [
                        {"form_name": "employees", "display_name": "Employee"},
                        {"form_name": "P_Timesheet", "display_name": "Timesheet"},
                    ]
                },
            )
        ]
    )

    modules = await client.get_modules()
    again = await client.get_modules()

    names = [m["api_name"] for m in modules]
    assert names[:2] == ["employees", "P_Timesheet"]
    assert names.count("employees") == 1
    assert set(names) >= {m["api_name"] for m in COMMON_PEOPLE_MODULES}
    assert again == modules
    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_department_fields_use_form_alias():
    client, transport = _client([httpx.Response(200, json={"fields": [{"field_name": "Department"}]})])

    fields = await client.get_fields("departments")

    assert fields == [{"field_name": "Department"}]
    assert transport.requests[0].url.path == "/people/api/forms/P_Department/fields"
