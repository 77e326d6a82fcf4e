"""
测试公共夹具

提供内存版的对象存储 finder 和位置目录，用于驱动聚合核心。
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pytest

# 添加项目路径到 sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

from monitor_inventory.config import reset_config
from monitor_inventory.errors import RegistryLoadError
from monitor_inventory.fetcher import PageCursor, PagedFetcher
from monitor_inventory.locations import LocationDirectory
from monitor_inventory.models import LocationCatalog, MonitorQuery, ServiceLocation


def make_monitor(
    query_id: str,
    enabled: Optional[bool] = None,
    origin: Optional[str] = None,
    schedule: Optional[Dict[str, Any]] = None,
    locations: Sequence[Dict[str, Any]] = (),
) -> Dict[str, Any]:
    """构造对象存储中的监控 attributes（enabled=None 表示字段缺失）"""
    raw: Dict[str, Any] = {
        "id": query_id,
        "name": f"monitor {query_id}",
        "schedule": schedule if schedule is not None else {"number": "3", "unit": "m"},
        "locations": list(locations),
    }
    if enabled is not None:
        raw["enabled"] = enabled
    if origin is not None:
        raw["origin"] = origin
    return raw


class FakeFetcher(PagedFetcher):
    """内存版分页 finder"""

    def __init__(
        self,
        pages: List[List[Dict[str, Any]]],
        fail_at_page: Optional[int] = None,
        close_error: Optional[Exception] = None,
        close_delay: float = 0.0,
    ):
        self.pages = pages
        self.fail_at_page = fail_at_page
        self.close_error = close_error
        self.close_delay = close_delay
        self.open_count = 0
        self.close_count = 0
        self.pages_served = 0
        self.last_query: Optional[MonitorQuery] = None

    async def open(self, query: MonitorQuery) -> PageCursor:
        self.open_count += 1
        self.last_query = query
        return PageCursor(query=query, pit_id=f"pit-{self.open_count}")

    async def next_page(self, cursor: PageCursor) -> List[Dict[str, Any]]:
        if self.fail_at_page is not None and self.pages_served == self.fail_at_page:
            raise ConnectionError("object store unavailable")
        if self.pages_served >= len(self.pages):
            return []
        page = self.pages[self.pages_served]
        self.pages_served += 1
        return page

    async def close(self, cursor: PageCursor) -> None:
        self.close_count += 1
        if self.close_delay:
            await asyncio.sleep(self.close_delay)
        if self.close_error is not None:
            raise self.close_error


class FakeDirectory(LocationDirectory):
    """内存版位置目录，记录调用次数"""

    def __init__(
        self,
        public: Optional[Dict[str, str]] = None,
        private: Optional[Dict[str, str]] = None,
        fail_times: int = 0,
        delay: float = 0.0,
    ):
        self.public = public or {}
        self.private = private or {}
        self.fail_times = fail_times
        self.delay = delay
        self.calls = 0

    async def list_locations(self) -> LocationCatalog:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RegistryLoadError("location directory unavailable")
        return LocationCatalog(
            public_locations=[ServiceLocation(id=k, label=v) for k, v in self.public.items()],
            private_locations=[ServiceLocation(id=k, label=v) for k, v in self.private.items()],
        )


@pytest.fixture
def directory():
    return FakeDirectory(
        public={"loc-7": "Tokyo", "us_east": "US East", "eu_west": "EU West"},
        private={"priv-1": "Office Lab"},
    )


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """每个测试使用默认配置，不读取工作目录中的 config.yaml"""
    monkeypatch.setenv("MONITOR_INVENTORY_CONFIG", str(tmp_path / "missing.yaml"))
    reset_config()
    yield
    reset_config()
