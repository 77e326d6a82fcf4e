"""
位置目录与位置注册表

LocationRegistry 在第一次遇到缺失 label 的位置时才加载位置目录，
加载结果只在一次聚合内有效，每次聚合都新建实例。
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Iterable, List, Optional

import httpx
from pydantic import ValidationError

from .errors import RegistryLoadError
from .models import LocationCatalog

logger = logging.getLogger(__name__)


class LocationDirectory(ABC):
    """位置目录服务接口"""

    @abstractmethod
    async def list_locations(self) -> LocationCatalog:
        """返回公共位置和私有位置"""


class HttpLocationDirectory(LocationDirectory):
    """基于 httpx 的位置目录：GET {base_url}/locations"""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    async def list_locations(self) -> LocationCatalog:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"ApiKey {self.api_key}"

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
                transport=self._transport
            ) as client:
                response = await client.get("/locations")
                response.raise_for_status()
                return LocationCatalog.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            raise RegistryLoadError(f"Failed to load service locations: {e}") from e


class RegistryState(str, Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"


class LocationRegistry:
    """
    位置注册表（单次聚合内的缓存）

    - 首次需要时加载目录，并发请求共享同一次加载
    - 加载失败不缓存，状态保持 UNLOADED
    - 目录中找不到的 id 直接用 id 作为 label
    """

    def __init__(self, directory: LocationDirectory):
        self._directory = directory
        self._state = RegistryState.UNLOADED
        self._labels: Dict[str, str] = {}
        self._resolved: Dict[str, str] = {}
        self._lock = asyncio.Lock()

        self.load_count = 0
        self.unresolved_ids: List[str] = []

    @property
    def state(self) -> RegistryState:
        return self._state

    async def ensure_loaded(self):
        """加载位置目录（最多成功一次）"""
        if self._state is RegistryState.LOADED:
            return

        async with self._lock:
            if self._state is RegistryState.LOADED:
                return

            try:
                catalog = await self._directory.list_locations()
            except RegistryLoadError:
                raise
            except Exception as e:
                raise RegistryLoadError(f"Failed to load service locations: {e}") from e

            labels: Dict[str, str] = {}
            for location in [*catalog.public_locations, *catalog.private_locations]:
                labels.setdefault(location.id, location.label)

            self._labels = labels
            self._state = RegistryState.LOADED
            self.load_count += 1
            logger.info(
                f"Loaded {len(catalog.public_locations)} public and "
                f"{len(catalog.private_locations)} private locations"
            )

    def _lookup(self, location_id: str) -> str:
        if location_id in self._resolved:
            return self._resolved[location_id]

        label = self._labels.get(location_id)
        if label is None:
            logger.debug(f"Location {location_id} not found in catalog, using id as label")
            self.unresolved_ids.append(location_id)
            label = location_id

        self._resolved[location_id] = label
        return label

    async def label_for(self, location_id: str) -> str:
        """获取单个位置的 label"""
        await self.ensure_loaded()
        return self._lookup(location_id)

    async def labels_for(self, location_ids: Iterable[str]) -> Dict[str, str]:
        """批量获取 label（去重后只加载一次目录）"""
        distinct = list(dict.fromkeys(location_ids))
        if not distinct:
            return {}

        await self.ensure_loaded()
        return {location_id: self._lookup(location_id) for location_id in distinct}
