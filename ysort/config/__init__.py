"""配置模块

提供配置管理功能：
- SortableSettings: 排序选项的全局默认值
- AppSettings: 聚合配置（database / logging / sortable），支持 YAML + 环境变量
- ConfigLoader: YAML 配置加载器

快速开始:
    from ysort.config import AppSettings, load_yaml_config

    settings = load_yaml_config("config/settings.yaml", AppSettings)
"""

from .settings import (
    AppSettings,
    SortableSettings,
    DatabaseSettings,
    LoggingSettings,
)

from .loader import (
    ConfigLoader,
    load_yaml_config,
)

__all__ = [
    "AppSettings",
    "SortableSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "ConfigLoader",
    "load_yaml_config",
]
