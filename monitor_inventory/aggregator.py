"""
监控清单聚合

遍历全部监控配置，按启用/禁用分桶：
- 记录最大调度周期，保证状态快照查询能覆盖所有启用监控的最近一次执行
- 汇总所有启用监控使用的位置，以及每个监控的位置列表

一页处理完（分类、解析位置、折叠）后才拉取下一页。
"""

import logging
from typing import Any, Dict, List, Optional

from .accumulator import AggregationAccumulator
from .classifier import classify
from .errors import InventoryError
from .fetcher import PagedFetcher, iter_batches, open_cursor
from .locations import LocationDirectory, LocationRegistry
from .models import AggregationResult, Bucket, MonitorQuery, MonitorRecord
from .resolver import LocationResolver

logger = logging.getLogger(__name__)


async def process_page(
    raw_records: List[Dict[str, Any]],
    resolver: LocationResolver,
    accumulator: AggregationAccumulator
):
    """
    处理一页记录

    先解析整页（任何一条不合法都直接失败），再批量解析启用监控的位置，
    最后按到达顺序折叠进累加器。
    """
    records = [MonitorRecord.parse(raw) for raw in raw_records]
    classified = [(record, classify(record)) for record in records]

    enabled = [record for record, c in classified if c.bucket is Bucket.ENABLED]
    labels = await resolver.resolve_page(enabled)

    for record, classification in classified:
        accumulator.add(record, classification, labels.get(record.query_id))


def _log_summary(result: AggregationResult, registry: LocationRegistry, pages: int):
    logger.info(
        f"Aggregated {len(result.all_ids)} monitors from {pages} pages: "
        f"enabled={len(result.enabled_ids)}, disabled={result.disabled_monitor_count}, "
        f"project={result.project_monitor_count}, locations={len(result.all_distinct_locations)}, "
        f"max_period_ms={result.max_period_ms}"
    )
    if registry.unresolved_ids:
        logger.warning(
            f"{len(registry.unresolved_ids)} location ids not found in catalog, "
            f"using ids as labels: {registry.unresolved_ids}"
        )


async def aggregate(
    query: Optional[MonitorQuery],
    fetcher: PagedFetcher,
    directory: LocationDirectory,
    close_timeout: float = 5.0
) -> AggregationResult:
    """
    拉取并聚合全部监控配置

    Args:
        query: find 查询参数，默认每页 1000 条
        fetcher: 对象存储分页接口
        directory: 位置目录服务（仅在出现缺失 label 时访问）
        close_timeout: 关闭游标的超时时间（秒）

    Returns:
        AggregationResult

    Raises:
        FetchError: 拉取失败
        RegistryLoadError: 位置目录加载失败
        MalformedRecordError: 记录缺少 id 或结构不合法
    """
    query = query or MonitorQuery()

    # 每次聚合使用独立的注册表
    registry = LocationRegistry(directory)
    resolver = LocationResolver(registry)
    accumulator = AggregationAccumulator()
    pages = 0

    try:
        async with open_cursor(fetcher, query, close_timeout) as cursor:
            batches = iter_batches(fetcher, cursor)
            try:
                async for batch in batches:
                    await process_page(batch, resolver, accumulator)
                    pages += 1
            finally:
                await batches.aclose()
    except InventoryError as e:
        logger.error(f"Monitor aggregation failed after {pages} pages: {e}")
        raise

    result = accumulator.result()
    _log_summary(result, registry, pages)
    return result


async def process_monitors(
    raw_records: List[Dict[str, Any]],
    directory: LocationDirectory
) -> AggregationResult:
    """聚合已经拉取好的记录列表（整体视为一页）"""
    registry = LocationRegistry(directory)
    accumulator = AggregationAccumulator()

    if raw_records:
        await process_page(raw_records, LocationResolver(registry), accumulator)

    result = accumulator.result()
    _log_summary(result, registry, 1 if raw_records else 0)
    return result
