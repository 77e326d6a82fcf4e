"""
对象存储分页拉取

PagedFetcher 是对象存储 point-in-time finder 的抽象：
open 打开游标，next_page 逐页返回记录（空列表表示结束），close 释放游标。
聚合核心只依赖这个接口，HttpPagedFetcher 是基于 httpx 的默认实现。
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from .errors import FetchError, InventoryError
from .models import MonitorQuery

logger = logging.getLogger(__name__)


@dataclass
class PageCursor:
    """分页游标状态"""
    query: MonitorQuery
    pit_id: Optional[str] = None
    search_after: Optional[List[Any]] = None
    exhausted: bool = False


class PagedFetcher(ABC):
    """对象存储分页拉取接口"""

    @abstractmethod
    async def open(self, query: MonitorQuery) -> PageCursor:
        """打开游标"""

    @abstractmethod
    async def next_page(self, cursor: PageCursor) -> List[Dict[str, Any]]:
        """拉取下一页记录，返回空列表表示已拉完"""

    @abstractmethod
    async def close(self, cursor: PageCursor) -> None:
        """关闭游标"""


async def _close_quietly(fetcher: PagedFetcher, cursor: PageCursor, timeout: float):
    """关闭游标；失败或超时只记录日志，不影响结果返回"""
    try:
        await asyncio.wait_for(fetcher.close(cursor), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Timed out closing monitor finder after {timeout}s")
    except Exception as e:
        logger.warning(f"Failed to close monitor finder: {e}")


@asynccontextmanager
async def open_cursor(
    fetcher: PagedFetcher,
    query: MonitorQuery,
    close_timeout: float = 5.0
) -> AsyncIterator[PageCursor]:
    """
    打开游标（上下文管理器）

    无论正常结束还是中途出错，游标都只关闭一次。

    使用方式：
        async with open_cursor(fetcher, query) as cursor:
            async for batch in iter_batches(fetcher, cursor):
                ...
    """
    try:
        cursor = await fetcher.open(query)
    except InventoryError:
        raise
    except Exception as e:
        raise FetchError(f"Failed to open monitor finder: {e}") from e

    try:
        yield cursor
    finally:
        await _close_quietly(fetcher, cursor, close_timeout)


async def iter_batches(
    fetcher: PagedFetcher,
    cursor: PageCursor
) -> AsyncIterator[List[Dict[str, Any]]]:
    """逐页读取，直到 fetcher 返回空页"""
    while True:
        try:
            batch = await fetcher.next_page(cursor)
        except InventoryError:
            raise
        except Exception as e:
            raise FetchError(f"Failed to fetch monitor page: {e}") from e

        if not batch:
            return
        yield batch


async def get_all_monitors(
    fetcher: PagedFetcher,
    query: Optional[MonitorQuery] = None,
    close_timeout: float = 5.0
) -> List[Dict[str, Any]]:
    """拉取全部监控记录（原始 attributes）"""
    query = query or MonitorQuery()
    hits: List[Dict[str, Any]] = []

    async with open_cursor(fetcher, query, close_timeout) as cursor:
        batches = iter_batches(fetcher, cursor)
        try:
            async for batch in batches:
                hits.extend(batch)
        finally:
            await batches.aclose()

    return hits


class HttpPagedFetcher(PagedFetcher):
    """
    基于 httpx 的对象存储 finder

    接口约定：
    - POST {base_url}/_pit       {"type"}                 -> {"id"}
    - POST {base_url}/_find      {type, per_page, pit...} -> {"saved_objects": [...]}
    - DELETE {base_url}/_pit     {"id"}
    """

    def __init__(
        self,
        base_url: str,
        monitor_type: str = "synthetics-monitor",
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url
        self.monitor_type = monitor_type
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"ApiKey {self.api_key}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport
        )

    async def open(self, query: MonitorQuery) -> PageCursor:
        try:
            async with self._client() as client:
                response = await client.post("/_pit", json={"type": self.monitor_type})
                response.raise_for_status()
                pit_id = response.json()["id"]
        except (httpx.HTTPError, KeyError, ValueError) as e:
            raise FetchError(f"Failed to open point-in-time for {self.monitor_type}: {e}") from e

        logger.debug(f"Opened point-in-time {pit_id} for {self.monitor_type}")
        return PageCursor(query=query, pit_id=pit_id)

    def _find_body(self, cursor: PageCursor) -> Dict[str, Any]:
        query = cursor.query
        body: Dict[str, Any] = {
            "type": self.monitor_type,
            "per_page": query.page_size,
            "pit": {"id": cursor.pit_id},
        }
        if query.search:
            body["search"] = query.search
        if query.sort_field:
            body["sort_field"] = query.sort_field
        if query.sort_order:
            body["sort_order"] = query.sort_order
        if query.fields:
            body["fields"] = query.fields
        if cursor.search_after is not None:
            body["search_after"] = cursor.search_after
        return body

    async def next_page(self, cursor: PageCursor) -> List[Dict[str, Any]]:
        if cursor.exhausted:
            return []

        try:
            async with self._client() as client:
                response = await client.post("/_find", json=self._find_body(cursor))
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise FetchError(f"Failed to fetch {self.monitor_type} page: {e}") from e

        saved_objects = data.get("saved_objects") or []
        cursor.pit_id = data.get("pit_id", cursor.pit_id)

        # 不足一页说明已经是最后一页
        if len(saved_objects) < cursor.query.page_size:
            cursor.exhausted = True
        if saved_objects:
            cursor.search_after = saved_objects[-1].get("sort")

        return [so.get("attributes") or {} for so in saved_objects]

    async def close(self, cursor: PageCursor) -> None:
        if cursor.pit_id is None:
            return
        async with self._client() as client:
            response = await client.request("DELETE", "/_pit", json={"id": cursor.pit_id})
            response.raise_for_status()
        logger.debug(f"Closed point-in-time {cursor.pit_id}")
