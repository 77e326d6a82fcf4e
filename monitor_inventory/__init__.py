"""
Monitor Inventory - 监控配置清单聚合服务

负责：
- 分页拉取对象存储中的全部监控配置
- 按启用/禁用、项目来源分类
- 回填缺失的部署位置名称（按需加载位置目录）
- 汇总最大调度周期、位置集合和每个监控的位置索引
- 提供 REST API 给前端
"""

__version__ = "1.0.0"
