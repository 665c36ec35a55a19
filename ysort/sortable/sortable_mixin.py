"""排序管理 Mixin

在模型上提供排序操作方法，内部委托给 OrderingEngine + ORMRankStore。

使用示例:
    from ysort.orm import CoreModel
    from ysort.sortable import SortFieldMixin, SortableMixin

    # 简单列表排序
    class Banner(CoreModel, SortFieldMixin, SortableMixin):
        __tablename__ = "banner"
        title = mapped_column(String(100))

    banner = Banner(title="首页").save_with_rank()   # 排到最后
    banner.move_up()          # 上移一位
    banner.move_down()        # 下移一位
    banner.move_to_start()    # 置顶
    banner.move_to_end()      # 置底

    # 分组排序（同一分类内排序）
    class Product(CoreModel, SortFieldMixin, SortableMixin):
        __tablename__ = "product"
        __sortable__ = {"sort_group_by": "category_id"}

        category_id = mapped_column(Integer)

    # 批量重排序（前端拖拽后）
    Banner.reorder([3, 1, 2])
"""

from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy.orm import Session, object_session

from .backends.orm import ORMRankStore, RelationshipGroupResolver
from .engine import OrderingEngine
from .events import sorted_event_dispatcher
from .interfaces import ChangeNotifier, RankScope
from .options import SortableOptions

if TYPE_CHECKING:
    from typing_extensions import Self


class SortableMixin:
    """排序管理 Mixin

    字段要求（使用者需定义或使用 SortFieldMixin）:
        - order_column: 排序值（字段名可通过 order_column_name 修改）

    可配置属性（子类可覆盖）:
        - __sortable__: 排序选项覆盖，键与 SortableSettings 相同，例如
            {"order_column_name": "position", "sort_group_by": ["category_id", "status"]}
          未覆盖的选项使用 configure_sortable() / 环境变量中的默认值。

    分组排序（排序值保存在一对一关联记录上）:
        class Product(CoreModel, SortableMixin):
            __sortable__ = {"order_relationship": "position"}
            position = relationship("ProductPosition", uselist=False)

        product = Product(name="A").save_with_rank()   # 保存后创建 position 记录
        product.move_to_start()

    每次调用都会重新读取配置并构造引擎，批量重排序后通过
    sorted_event_dispatcher 发出 ModelSortedEvent。
    """

    __sortable__: Dict[str, Any] = {}

    # ==================== 引擎 ====================

    @classmethod
    def sortable_options(cls) -> SortableOptions:
        """合并默认配置与 __sortable__ 后的排序配置"""
        return SortableOptions.resolve(overrides=getattr(cls, "__sortable__", None))

    @classmethod
    def _sortable_session(cls, session: Optional[Session] = None) -> Session:
        if session is not None:
            return session
        query = getattr(cls, "query", None)
        if query is not None:
            return query.session
        from ysort.orm import db_manager
        return db_manager.get_session()

    @classmethod
    def sortable_engine(
        cls,
        session: Optional[Session] = None,
        notifier: Optional[ChangeNotifier] = None,
    ) -> OrderingEngine:
        """构造排序引擎

        Args:
            session: SQLAlchemy 会话，默认使用 query 属性绑定的会话
            notifier: 批量重排序通知对象，默认全局 sorted_event_dispatcher
        """
        options = cls.sortable_options()
        session = cls._sortable_session(session)
        store = ORMRankStore(session, cls, options)
        resolver = None
        if options.grouped:
            resolver = RelationshipGroupResolver(cls, options.order_relationship, session)
        return OrderingEngine(
            cls,
            store,
            options,
            resolver=resolver,
            notifier=notifier if notifier is not None else sorted_event_dispatcher,
        )

    def _engine(self) -> OrderingEngine:
        return self.__class__.sortable_engine(object_session(self))

    # ==================== 新建 ====================

    def before_persist(self) -> Optional[int]:
        """保存前调用，直接排序时分配排序值"""
        return self._engine().before_persist(self)

    def after_persist(self) -> Optional[int]:
        """保存后调用，分组排序时创建关联排序记录"""
        return self._engine().after_persist(self)

    def save_with_rank(self, commit: bool = False) -> "Self":
        """保存并分配排序值（sort_when_creating 关闭时只保存）

        Args:
            commit: 是否立即提交，默认False（仅 flush）
        """
        session = object_session(self) or self.__class__._sortable_session()
        engine = self.__class__.sortable_engine(session)
        engine.before_persist(self)
        session.add(self)
        session.flush()
        engine.after_persist(self)
        if commit:
            session.commit()
        return self

    # ==================== 实例方法 ====================

    def move_up(self) -> "Self":
        """上移一位（已在最前时不变）"""
        return self._engine().move_up(self)

    def move_down(self) -> "Self":
        """下移一位（已在最后时不变）"""
        return self._engine().move_down(self)

    def move_to_start(self) -> "Self":
        """置顶"""
        return self._engine().move_to_start(self)

    def move_to_end(self) -> "Self":
        """置底"""
        return self._engine().move_to_end(self)

    def swap_with(self, other: Optional["SortableMixin"]) -> "Self":
        """与另一条记录交换排序值，other 为 None 时不变"""
        return self._engine().swap(self, other)

    @classmethod
    def swap(cls, a: "SortableMixin", b: Optional["SortableMixin"]) -> "SortableMixin":
        return cls.sortable_engine(object_session(a)).swap(a, b)

    def current_rank(self) -> int:
        return self._engine().current_rank(self)

    def set_rank(self, value: int) -> None:
        self._engine().set_rank(self, value)

    def is_rank(self, value: int) -> bool:
        return self._engine().is_rank(self, value)

    def is_first(self) -> bool:
        return self._engine().is_first(self)

    def is_last(self) -> bool:
        return self._engine().is_last(self)

    def highest_rank(self) -> int:
        """同组最大排序值"""
        return self._engine().highest_rank(self)

    def lowest_rank(self) -> int:
        """同组最小排序值"""
        return self._engine().lowest_rank(self)

    def siblings(self, descending: bool = False) -> List["SortableMixin"]:
        """同组记录（含自己），按排序值排列"""
        return self._engine().ordered(self, descending=descending)

    # ==================== 类方法 ====================

    @classmethod
    def reorder(
        cls,
        ids: List[Any],
        start_rank: int = 1,
        key_column: Optional[str] = None,
        filter_fn: Optional[Callable[[Any], Any]] = None,
        session: Optional[Session] = None,
    ) -> int:
        """批量重排序

        根据传入的 ID 顺序重新设置排序值，适用于前端拖拽排序后提交新顺序的场景。

        Args:
            ids: ID 列表，按期望的顺序排列
            start_rank: 第一条记录的排序值
            key_column: 匹配字段，默认主键
            filter_fn: 接收 SQLAlchemy 语句并追加 where 条件的函数

        Returns:
            更新的记录数

        Example:
            count = Banner.reorder([3, 1, 2])
            session.commit()

            # 跳过软删除记录
            Banner.reorder([3, 1, 2], filter_fn=lambda stmt: stmt.where(Banner.deleted_at.is_(None)))
        """
        return cls.sortable_engine(session).bulk_reorder(
            ids, start_rank=start_rank, key_field=key_column, filter_fn=filter_fn
        )

    @classmethod
    def reorder_by_column(
        cls,
        key_column: str,
        ids: List[Any],
        start_rank: int = 1,
        session: Optional[Session] = None,
    ) -> int:
        """按其他唯一字段批量重排序

        Example:
            Banner.reorder_by_column("slug", ["home", "about", "news"])
        """
        return cls.sortable_engine(session).bulk_reorder_by_column(key_column, ids, start_rank=start_rank)

    @classmethod
    def ordered(
        cls,
        descending: bool = False,
        group_filters: Optional[dict] = None,
        session: Optional[Session] = None,
    ) -> List["SortableMixin"]:
        """获取排序后的记录列表

        Args:
            descending: 是否降序
            group_filters: 分组字段取值，None 表示不区分分组

        Example:
            banners = Banner.ordered()
            products = Product.ordered(group_filters={"category_id": 1})
        """
        engine = cls.sortable_engine(session)
        scope = engine.entity_scope()
        if group_filters is not None:
            partition = tuple(
                (field, group_filters.get(field)) for field in engine.options.sort_group_by
            )
            scope = RankScope(scope.entity, scope.relationship, partition)
        return engine.ordered(scope, descending=descending)


__all__ = [
    "SortableMixin",
]
