"""
测试 httpx 客户端（对象存储 finder 与位置目录）

使用 httpx.MockTransport 模拟上游接口。
"""

import json

import httpx
import pytest

from monitor_inventory.aggregator import aggregate
from monitor_inventory.errors import FetchError, RegistryLoadError
from monitor_inventory.fetcher import HttpPagedFetcher
from monitor_inventory.locations import HttpLocationDirectory
from monitor_inventory.models import MonitorQuery

from conftest import make_monitor

STORE_URL = "http://kibana.test/api/saved_objects"
LOCATIONS_URL = "http://kibana.test/internal/synthetics/service"


class FakeStore:
    """模拟 point-in-time find 接口"""

    def __init__(self, monitors, fail_find=False):
        self.monitors = monitors
        self.fail_find = fail_find
        self.find_bodies = []
        self.closed_pits = []
        self.opened = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = json.loads(request.content) if request.content else {}

        if path == "/api/saved_objects/_pit" and request.method == "POST":
            self.opened.append(body["type"])
            return httpx.Response(200, json={"id": "pit-abc"})

        if path == "/api/saved_objects/_pit" and request.method == "DELETE":
            self.closed_pits.append(body["id"])
            return httpx.Response(200, json={"succeeded": True})

        if path == "/api/saved_objects/_find" and request.method == "POST":
            self.find_bodies.append(body)
            if self.fail_find:
                return httpx.Response(503, json={"error": "unavailable"})
            start = body.get("search_after", [0])[0]
            page = self.monitors[start:start + body["per_page"]]
            return httpx.Response(200, json={
                "saved_objects": [
                    {"id": m["id"], "attributes": m, "sort": [start + i + 1]}
                    for i, m in enumerate(page)
                ],
                "pit_id": "pit-abc",
            })

        return httpx.Response(404)


def locations_handler(request: httpx.Request) -> httpx.Response:
    assert request.url.path == "/internal/synthetics/service/locations"
    return httpx.Response(200, json={
        "publicLocations": [{"id": "loc-7", "label": "Tokyo", "geo": {"lat": 35.6, "lon": 139.7}}],
        "privateLocations": [{"id": "priv-1", "label": "Office Lab"}],
    })


@pytest.fixture
def monitors():
    return [
        make_monitor("m1", locations=[{"id": "loc-7"}]),
        make_monitor("m2", enabled=False, locations=[{"id": "priv-1"}]),
        make_monitor("m3", locations=[{"id": "priv-1"}, {"id": "us_east", "label": "US East"}]),
    ]


class TestHttpPagedFetcher:
    """对象存储 finder 测试"""

    @pytest.mark.asyncio
    async def test_pages_until_short_page(self, monitors):
        store = FakeStore(monitors)
        fetcher = HttpPagedFetcher(STORE_URL, api_key="secret", transport=httpx.MockTransport(store.handler))
        query = MonitorQuery(page_size=2, search="m*", sort_field="name", sort_order="asc", fields=["id"])

        cursor = await fetcher.open(query)
        first = await fetcher.next_page(cursor)
        second = await fetcher.next_page(cursor)
        third = await fetcher.next_page(cursor)
        await fetcher.close(cursor)

        assert [m["id"] for m in first] == ["m1", "m2"]
        assert [m["id"] for m in second] == ["m3"]
        assert third == []

        # 短页之后不再请求
        assert len(store.find_bodies) == 2
        assert store.find_bodies[0] == {
            "type": "synthetics-monitor",
            "per_page": 2,
            "pit": {"id": "pit-abc"},
            "search": "m*",
            "sort_field": "name",
            "sort_order": "asc",
            "fields": ["id"],
        }
        assert store.find_bodies[1]["search_after"] == [2]
        assert store.opened == ["synthetics-monitor"]
        assert store.closed_pits == ["pit-abc"]

    @pytest.mark.asyncio
    async def test_api_key_header(self, monitors):
        seen = []

        def handler(request):
            seen.append(request.headers.get("Authorization"))
            return httpx.Response(200, json={"id": "pit-1"})

        fetcher = HttpPagedFetcher(STORE_URL, api_key="secret", transport=httpx.MockTransport(handler))
        await fetcher.open(MonitorQuery())

        assert seen == ["ApiKey secret"]

    @pytest.mark.asyncio
    async def test_find_error_raises_fetch_error(self, monitors):
        store = FakeStore(monitors, fail_find=True)
        fetcher = HttpPagedFetcher(STORE_URL, transport=httpx.MockTransport(store.handler))

        cursor = await fetcher.open(MonitorQuery())
        with pytest.raises(FetchError):
            await fetcher.next_page(cursor)

    @pytest.mark.asyncio
    async def test_open_error_raises_fetch_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        fetcher = HttpPagedFetcher(STORE_URL, transport=httpx.MockTransport(handler))
        with pytest.raises(FetchError, match="connection refused"):
            await fetcher.open(MonitorQuery())


class TestHttpLocationDirectory:
    """位置目录测试"""

    @pytest.mark.asyncio
    async def test_list_locations(self):
        directory = HttpLocationDirectory(LOCATIONS_URL, transport=httpx.MockTransport(locations_handler))

        catalog = await directory.list_locations()

        assert [loc.label for loc in catalog.public_locations] == ["Tokyo"]
        assert [loc.id for loc in catalog.private_locations] == ["priv-1"]

    @pytest.mark.asyncio
    async def test_error_raises_registry_load_error(self):
        directory = HttpLocationDirectory(
            LOCATIONS_URL,
            transport=httpx.MockTransport(lambda request: httpx.Response(500))
        )
        with pytest.raises(RegistryLoadError):
            await directory.list_locations()

    @pytest.mark.asyncio
    async def test_bad_payload_raises_registry_load_error(self):
        directory = HttpLocationDirectory(
            LOCATIONS_URL,
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"publicLocations": [{"id": "x"}]})
            )
        )
        with pytest.raises(RegistryLoadError):
            await directory.list_locations()


class TestEndToEnd:
    """HTTP 客户端驱动完整聚合"""

    @pytest.mark.asyncio
    async def test_aggregate_over_http(self, monitors):
        store = FakeStore(monitors)
        fetcher = HttpPagedFetcher(STORE_URL, transport=httpx.MockTransport(store.handler))
        directory = HttpLocationDirectory(LOCATIONS_URL, transport=httpx.MockTransport(locations_handler))

        result = await aggregate(MonitorQuery(page_size=2), fetcher, directory)

        assert result.all_ids == ["m1", "m2", "m3"]
        assert result.enabled_ids == ["m1", "m3"]
        assert result.disabled_location_instance_count == 1
        assert result.monitor_location_map == {"m1": ["Tokyo"], "m3": ["US East", "Office Lab"]}
        assert result.all_distinct_locations == ["Tokyo", "US East", "Office Lab"]
        assert store.closed_pits == ["pit-abc"]

    @pytest.mark.asyncio
    async def test_failed_page_still_closes_pit(self, monitors):
        store = FakeStore(monitors, fail_find=True)
        fetcher = HttpPagedFetcher(STORE_URL, transport=httpx.MockTransport(store.handler))
        directory = HttpLocationDirectory(LOCATIONS_URL, transport=httpx.MockTransport(locations_handler))

        with pytest.raises(FetchError):
            await aggregate(MonitorQuery(), fetcher, directory)

        assert store.closed_pits == ["pit-abc"]
