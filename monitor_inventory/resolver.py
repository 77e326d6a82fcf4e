"""
位置解析

label 是后来才写入位置字段的，旧记录可能只有 id，
缺失的 label 需要通过位置注册表回填。
"""

from typing import Dict, List, Sequence, Tuple

from .locations import LocationRegistry
from .models import LocationRef, MonitorRecord


def partition_locations(locations: Sequence[LocationRef]) -> Tuple[List[str], List[str]]:
    """
    拆分位置列表

    Returns:
        (已有的 label 列表, 缺少 label 的 id 列表)，均按首次出现顺序去重
    """
    labels: Dict[str, None] = {}
    missing: Dict[str, None] = {}
    for location in locations:
        if location.has_label:
            labels[location.label] = None
        else:
            missing[location.id] = None
    return list(labels), list(missing)


class LocationResolver:
    """按页批量解析启用监控的位置"""

    def __init__(self, registry: LocationRegistry):
        self.registry = registry

    async def resolve_page(self, records: Sequence[MonitorRecord]) -> Dict[str, List[str]]:
        """
        解析一页启用监控的位置

        整页缺失的 id 去重后一次性交给注册表；没有缺失时不会触发目录加载。

        Returns:
            {query_id: [label, ...]}，每个监控的 label 去重，已有 label 在前
        """
        partitions = {
            record.query_id: partition_locations(record.locations)
            for record in records
        }

        missing_ids = [
            location_id
            for _, missing in partitions.values()
            for location_id in missing
        ]
        resolved = await self.registry.labels_for(missing_ids) if missing_ids else {}

        result: Dict[str, List[str]] = {}
        for query_id, (labels, missing) in partitions.items():
            merged = dict.fromkeys(labels)
            for location_id in missing:
                merged.setdefault(resolved[location_id], None)
            result[query_id] = list(merged)
        return result
