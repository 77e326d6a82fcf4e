"""
数据模型定义

包括：
- 对象存储中的监控记录（强类型视图）
- 位置目录模型
- 查询参数与聚合结果
"""

import math
import re
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import MalformedRecordError


# =============================================================================
# 监控记录（对象存储返回的 attributes）
# =============================================================================

class SourceType(str, Enum):
    """监控来源"""
    PROJECT = "project"
    UI = "ui"


class LocationRef(BaseModel):
    """监控声明的部署位置（旧记录可能没有 label）"""
    model_config = ConfigDict(extra="ignore")

    id: str
    label: Optional[str] = None

    @property
    def has_label(self) -> bool:
        # 空字符串与缺失同等对待
        return bool(self.label)


_LEADING_INT = re.compile(r"\s*[+-]?\d+")


class MonitorSchedule(BaseModel):
    """调度周期（存储格式：{"number": "3", "unit": "m"}）"""
    model_config = ConfigDict(extra="ignore")

    number: int
    unit: str = "m"

    @field_validator("number", mode="before")
    @classmethod
    def _leading_integer(cls, value: Any) -> int:
        # 只取开头的整数部分（"1.5" -> 1，"10s" -> 10），取不到时为 0
        if isinstance(value, bool):
            return 0
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if math.isfinite(value) else 0
        match = _LEADING_INT.match(str(value))
        return int(match.group(0)) if match else 0


class MonitorRecord(BaseModel):
    """
    单条监控配置

    默认值规则：
    - enabled 缺失时为 None，按启用处理
    - origin 缺失时为 None，按非项目来源处理
    - locations 缺失时为空列表
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    query_id: str = Field(..., alias="id", min_length=1)
    enabled: Optional[bool] = None
    source_type: Optional[str] = Field(default=None, alias="origin")
    schedule: Optional[MonitorSchedule] = None
    locations: List[LocationRef] = Field(default_factory=list)

    @field_validator("enabled", mode="before")
    @classmethod
    def _literal_false_only(cls, value: Any) -> Optional[bool]:
        # 只有布尔值 False 表示禁用，其他任何值都按启用处理
        return False if value is False else None

    @classmethod
    def parse(cls, raw: Dict[str, Any]) -> "MonitorRecord":
        """
        解析对象存储返回的原始 attributes

        Raises:
            MalformedRecordError: 缺少 id 或字段结构不合法
        """
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raw_id = raw.get("id") if isinstance(raw, dict) else None
            raise MalformedRecordError(
                f"Malformed monitor record (id={raw_id!r}): {e.error_count()} validation error(s): {e}"
            ) from e


# =============================================================================
# 位置目录
# =============================================================================

class ServiceLocation(BaseModel):
    """位置目录中的标准位置"""
    model_config = ConfigDict(extra="ignore")

    id: str
    label: str


class LocationCatalog(BaseModel):
    """位置目录接口的响应（公共位置 + 私有位置）"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    public_locations: List[ServiceLocation] = Field(default_factory=list, alias="publicLocations")
    private_locations: List[ServiceLocation] = Field(default_factory=list, alias="privateLocations")


# =============================================================================
# 查询参数与结果
# =============================================================================

class MonitorQuery(BaseModel):
    """对象存储 find 查询参数"""
    page_size: int = Field(default=1000, ge=1, le=10000)
    search: Optional[str] = None
    sort_field: Optional[str] = None
    sort_order: Optional[Literal["asc", "desc"]] = None
    fields: Optional[List[str]] = None


class Bucket(str, Enum):
    """分类桶"""
    ENABLED = "enabled"
    DISABLED = "disabled"


class Classification(BaseModel):
    """单条监控的分类结果"""
    bucket: Bucket
    is_project: bool = False


class AggregationResult(BaseModel):
    """聚合结果（GET /api/monitors/overview）"""
    max_period_ms: int = 0
    all_ids: List[str] = Field(default_factory=list)
    enabled_ids: List[str] = Field(default_factory=list)
    disabled_location_instance_count: int = 0
    disabled_monitor_count: int = 0
    project_monitor_count: int = 0
    monitor_location_map: Dict[str, List[str]] = Field(default_factory=dict)
    all_distinct_locations: List[str] = Field(default_factory=list)
