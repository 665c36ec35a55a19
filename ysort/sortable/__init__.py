"""排序模块

维护记录在排序范围内的先后顺序（排序值唯一、连续），支持:

- 直接排序: 排序值保存在记录自身
- 分组排序: 排序值保存在一对一关联记录上
- 分组字段: 按 sort_group_by 字段值划分独立的排序范围

导出:
    - OrderingEngine: 排序引擎
    - SortFieldMixin / SortableMixin: SQLAlchemy 模型 Mixin
    - SortableOptions / configure_sortable: 排序配置
    - RankStore / GroupResolver / ChangeNotifier: 存储与通知接口
    - sorted_event_dispatcher / on_model_sorted: 批量重排序事件

使用示例:
    from ysort.orm import CoreModel
    from ysort.sortable import SortFieldMixin, SortableMixin

    class Banner(CoreModel, SortFieldMixin, SortableMixin):
        __tablename__ = "banner"
        title = mapped_column(String(100))

    banner = Banner(title="首页").save_with_rank()
    banner.move_to_start()
    Banner.reorder([3, 1, 2])
"""

from .exceptions import (
    SortableError,
    InvalidInputError,
    NotResolvableError,
    SortableConfigError,
    ListenerError,
    StoreFailure,
)
from .options import SortableOptions, configure_sortable, get_sortable_settings
from .interfaces import (
    Direction,
    RankScope,
    GroupHandle,
    RankStore,
    GroupResolver,
    ChangeNotifier,
)
from .engine import OrderingEngine
from .events import (
    ModelSortedEvent,
    SortedEventDispatcher,
    LoggingChangeNotifier,
    sorted_event_dispatcher,
    on_model_sorted,
)
from .backends import (
    ORMRankStore,
    RelationshipGroupResolver,
    MemoryRankStore,
    MemoryGroupResolver,
)
from .sortable_fields import SortFieldMixin
from .sortable_mixin import SortableMixin

__all__ = [
    # 异常
    "SortableError",
    "InvalidInputError",
    "NotResolvableError",
    "SortableConfigError",
    "ListenerError",
    "StoreFailure",
    # 配置
    "SortableOptions",
    "configure_sortable",
    "get_sortable_settings",
    # 接口
    "Direction",
    "RankScope",
    "GroupHandle",
    "RankStore",
    "GroupResolver",
    "ChangeNotifier",
    # 引擎
    "OrderingEngine",
    # 事件
    "ModelSortedEvent",
    "SortedEventDispatcher",
    "LoggingChangeNotifier",
    "sorted_event_dispatcher",
    "on_model_sorted",
    # 存储
    "ORMRankStore",
    "RelationshipGroupResolver",
    "MemoryRankStore",
    "MemoryGroupResolver",
    # Mixin
    "SortFieldMixin",
    "SortableMixin",
]
