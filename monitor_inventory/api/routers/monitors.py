"""
监控清单 API

提供监控配置列表和聚合概览。
"""

import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...aggregator import aggregate
from ...config import get_config
from ...errors import FetchError, InventoryError, RegistryLoadError
from ...fetcher import PagedFetcher, get_all_monitors
from ...locations import LocationDirectory
from ...models import AggregationResult, MonitorQuery
from ..dependencies import get_fetcher, get_location_directory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/monitors", tags=["monitors"])


def build_query(
    search: Optional[str] = Query(None, description="搜索关键字"),
    sort_field: Optional[str] = Query(None, description="排序字段"),
    sort_order: Optional[Literal["asc", "desc"]] = Query(None, description="排序方向"),
    fields: Optional[List[str]] = Query(None, description="只返回指定字段"),
) -> MonitorQuery:
    """从查询参数构建 find 查询（每页大小取配置值）"""
    return MonitorQuery(
        page_size=get_config().store.page_size,
        search=search,
        sort_field=sort_field,
        sort_order=sort_order,
        fields=fields
    )


def to_http_error(error: InventoryError) -> HTTPException:
    """上游失败返回 502，数据不合法返回 500"""
    if isinstance(error, (FetchError, RegistryLoadError)):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(error))


@router.get("", response_model=List[Dict[str, Any]])
async def list_monitors(
    query: MonitorQuery = Depends(build_query),
    fetcher: PagedFetcher = Depends(get_fetcher)
):
    """获取全部监控配置（原始 attributes）"""
    try:
        return await get_all_monitors(fetcher, query, get_config().store.close_timeout)
    except InventoryError as e:
        logger.warning(f"Failed to list monitors: {e}")
        raise to_http_error(e)


@router.get("/overview", response_model=AggregationResult)
async def get_overview(
    query: MonitorQuery = Depends(build_query),
    fetcher: PagedFetcher = Depends(get_fetcher),
    directory: LocationDirectory = Depends(get_location_directory)
):
    """
    获取监控清单聚合概览

    返回启用/禁用监控 ID、最大调度周期、位置集合和每个监控的位置列表。
    """
    try:
        return await aggregate(query, fetcher, directory, get_config().store.close_timeout)
    except InventoryError as e:
        raise to_http_error(e)
