"""
聚合累加器

按记录到达顺序折叠分类结果和位置，流结束后生成 AggregationResult。
"""

from typing import Dict, List, Optional, Sequence

from .errors import MalformedRecordError
from .models import AggregationResult, Bucket, Classification, MonitorRecord
from .schedule import period_to_ms


class AggregationAccumulator:
    """
    聚合状态

    - all_ids / enabled_ids: 按到达顺序
    - disabled_location_instance_count: 禁用监控的位置数之和（不是监控数）
    - max_period_ms: 只统计启用监控
    - distinct_locations: 按首次出现顺序去重
    """

    def __init__(self):
        self.max_period_ms = 0
        self.all_ids: List[str] = []
        self.enabled_ids: List[str] = []
        self.disabled_location_instance_count = 0
        self.disabled_monitor_count = 0
        self.project_monitor_count = 0
        self.monitor_location_map: Dict[str, List[str]] = {}
        self._distinct_locations: Dict[str, None] = {}
        self._seen_ids = set()

    def add(
        self,
        record: MonitorRecord,
        classification: Classification,
        labels: Optional[Sequence[str]] = None
    ):
        """折叠一条记录；labels 只对启用监控有意义"""
        if record.query_id in self._seen_ids:
            raise MalformedRecordError(f"Duplicate monitor id in result set: {record.query_id}")
        self._seen_ids.add(record.query_id)

        self.all_ids.append(record.query_id)
        if classification.is_project:
            self.project_monitor_count += 1

        if classification.bucket is Bucket.DISABLED:
            self.disabled_monitor_count += 1
            self.disabled_location_instance_count += len(record.locations)
            return

        self.enabled_ids.append(record.query_id)

        monitor_labels = list(dict.fromkeys(labels or []))
        self.monitor_location_map[record.query_id] = monitor_labels
        for label in monitor_labels:
            self._distinct_locations.setdefault(label, None)

        self.max_period_ms = max(self.max_period_ms, period_to_ms(record.schedule))

    def result(self) -> AggregationResult:
        """生成最终结果（拷贝内部状态）"""
        return AggregationResult(
            max_period_ms=self.max_period_ms,
            all_ids=list(self.all_ids),
            enabled_ids=list(self.enabled_ids),
            disabled_location_instance_count=self.disabled_location_instance_count,
            disabled_monitor_count=self.disabled_monitor_count,
            project_monitor_count=self.project_monitor_count,
            monitor_location_map={k: list(v) for k, v in self.monitor_location_map.items()},
            all_distinct_locations=list(self._distinct_locations),
        )
