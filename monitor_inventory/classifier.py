"""
监控分类
"""

from .models import Bucket, Classification, MonitorRecord, SourceType


def classify(record: MonitorRecord) -> Classification:
    """
    判断监控的分类桶和来源

    只有 enabled 明确为 False 才算禁用，缺失按启用处理。
    """
    bucket = Bucket.DISABLED if record.enabled is False else Bucket.ENABLED
    return Classification(
        bucket=bucket,
        is_project=record.source_type == SourceType.PROJECT.value
    )
