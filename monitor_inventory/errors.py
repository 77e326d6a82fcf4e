"""
异常定义

聚合过程中的所有失败都以 InventoryError 子类抛出，调用方只需捕获基类。
"""


class InventoryError(Exception):
    """聚合失败的基类"""


class FetchError(InventoryError):
    """对象存储查询或翻页失败"""


class RegistryLoadError(InventoryError):
    """位置目录加载失败"""


class MalformedRecordError(InventoryError):
    """监控记录缺少必需字段或结构不合法"""
