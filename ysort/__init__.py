"""
ysort - SQLAlchemy 模型排序库

提供排序引擎、模型 Mixin、配置、日志等基础功能
"""

from .version import __version__, __author__, __description__

# 导出ORM基类
from .orm import (
    Base,
    CoreModel,
    init_database,
    get_engine,
    db_session_scope,
)

# 导出排序模块
from .sortable import (
    OrderingEngine,
    SortableOptions,
    configure_sortable,
    SortFieldMixin,
    SortableMixin,
    RankScope,
    RankStore,
    GroupResolver,
    ChangeNotifier,
    ORMRankStore,
    RelationshipGroupResolver,
    MemoryRankStore,
    MemoryGroupResolver,
    sorted_event_dispatcher,
    on_model_sorted,
    ModelSortedEvent,
    SortableError,
    InvalidInputError,
    NotResolvableError,
    SortableConfigError,
    StoreFailure,
)

# 导出日志
from .log import get_logger, setup_logger, setup_root_logger

# 导出配置
from .config import AppSettings, SortableSettings, load_yaml_config

__all__ = [
    "__version__",
    "__author__",
    "__description__",

    # ORM
    "Base",
    "CoreModel",
    "init_database",
    "get_engine",
    "db_session_scope",

    # 排序
    "OrderingEngine",
    "SortableOptions",
    "configure_sortable",
    "SortFieldMixin",
    "SortableMixin",
    "RankScope",
    "RankStore",
    "GroupResolver",
    "ChangeNotifier",
    "ORMRankStore",
    "RelationshipGroupResolver",
    "MemoryRankStore",
    "MemoryGroupResolver",
    "sorted_event_dispatcher",
    "on_model_sorted",
    "ModelSortedEvent",

    # 异常
    "SortableError",
    "InvalidInputError",
    "NotResolvableError",
    "SortableConfigError",
    "StoreFailure",

    # 日志
    "get_logger",
    "setup_logger",
    "setup_root_logger",

    # 配置
    "AppSettings",
    "SortableSettings",
    "load_yaml_config",
]
