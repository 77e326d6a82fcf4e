"""
依赖注入模块

提供 FastAPI 依赖项，测试中可通过 dependency_overrides 替换。
"""

from ..config import get_config
from ..fetcher import HttpPagedFetcher, PagedFetcher
from ..locations import HttpLocationDirectory, LocationDirectory


async def get_fetcher() -> PagedFetcher:
    """获取对象存储分页接口"""
    config = get_config()
    return HttpPagedFetcher(
        base_url=config.store.base_url,
        monitor_type=config.store.monitor_type,
        api_key=config.store.api_key,
        timeout=config.store.timeout
    )


async def get_location_directory() -> LocationDirectory:
    """获取位置目录服务"""
    config = get_config()
    return HttpLocationDirectory(
        base_url=config.locations.base_url,
        api_key=config.locations.api_key,
        timeout=config.locations.timeout
    )
