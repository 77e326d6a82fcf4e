"""
调度周期换算
"""

from typing import Optional

from .models import MonitorSchedule

UNIT_MS = {
    "ms": 1,
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
    "w": 7 * 24 * 60 * 60 * 1000,
    "M": 30 * 24 * 60 * 60 * 1000,
    "y": 365 * 24 * 60 * 60 * 1000,
}


def period_to_ms(schedule: Optional[MonitorSchedule]) -> int:
    """
    将调度周期换算为毫秒

    未知单位按秒处理；没有调度信息时返回 0。
    """
    if schedule is None:
        return 0
    return schedule.number * UNIT_MS.get(schedule.unit, UNIT_MS["s"])
