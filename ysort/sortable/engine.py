"""排序引擎

所有修改排序值的算法都在这里，存储细节通过 RankStore / GroupResolver 注入。

- 直接排序: 排序值保存在记录自身的字段上
- 分组排序: 排序值保存在记录的关联记录上（提供 GroupResolver 时）

使用示例:
    from ysort.sortable import OrderingEngine, SortableOptions
    from ysort.sortable.backends import ORMRankStore

    options = SortableOptions()
    store = ORMRankStore(session, Banner, options)
    engine = OrderingEngine(Banner, store, options)

    banner = Banner(title="首页")
    engine.before_persist(banner)   # 排到最后
    session.add(banner)
    session.flush()

    engine.move_to_start(banner)
    engine.bulk_reorder([3, 1, 2])
"""

from collections.abc import Sequence
from contextlib import nullcontext
from typing import Any, Callable, ContextManager, List, Optional, Union

from ysort.log import get_logger

from .exceptions import InvalidInputError, NotResolvableError, SortableConfigError
from .interfaces import ChangeNotifier, Direction, GroupResolver, RankScope, RankStore
from .options import SortableOptions

logger = get_logger("ysort.sortable.engine")

ScopeOrRecord = Union[RankScope, Any]


class OrderingEngine:
    """排序引擎

    Args:
        entity: 参与排序的模型类
        store: 排序值存储
        options: 排序配置，None 时使用默认值
        resolver: 关联排序记录解析器，提供时为分组排序
        notifier: 批量重排序完成后的通知对象
    """

    def __init__(
        self,
        entity: type,
        store: RankStore,
        options: Optional[SortableOptions] = None,
        resolver: Optional[GroupResolver] = None,
        notifier: Optional[ChangeNotifier] = None,
    ):
        self.entity = entity
        self.store = store
        self.options = options or SortableOptions()
        self.resolver = resolver
        self.notifier = notifier

        if self.options.grouped and resolver is None:
            raise SortableConfigError(
                f"{entity.__name__} 配置了 order_relationship={self.options.order_relationship!r}，"
                f"但没有提供 GroupResolver"
            )
        if resolver is not None and self.options.grouped \
                and resolver.relationship != self.options.order_relationship:
            raise SortableConfigError(
                f"GroupResolver 的关系 {resolver.relationship!r} 与配置 "
                f"{self.options.order_relationship!r} 不一致"
            )

        self._relationship = resolver.relationship if resolver is not None else None

    @property
    def grouped(self) -> bool:
        return self._relationship is not None

    # ==================== 范围 ====================

    def scope_of(self, record: Any) -> RankScope:
        """记录所在的排序范围"""
        partition = tuple(
            (field, getattr(record, field, None)) for field in self.options.sort_group_by
        )
        return RankScope(self.entity, self._relationship, partition)

    def entity_scope(self) -> RankScope:
        """整张表（不区分分组字段）的范围"""
        return RankScope(self.entity, self._relationship)

    def _as_scope(self, target: Optional[ScopeOrRecord]) -> RankScope:
        if target is None:
            return self.entity_scope()
        if isinstance(target, RankScope):
            return target
        return self.scope_of(target)

    def _rank_row(self, record: Any) -> Any:
        """保存排序值的对象"""
        if not self.grouped:
            return record
        handle = self.resolver.resolve_group(record)
        if handle.row is None:
            raise NotResolvableError(record, handle.relationship)
        return handle.row

    def _atomic(self, scope: RankScope) -> ContextManager[None]:
        if self.options.atomic_operations:
            return self.store.atomic(scope)
        return nullcontext()

    # ==================== 查询 ====================

    def highest_rank(self, target: Optional[ScopeOrRecord] = None) -> int:
        """范围内最大排序值，空范围返回 0"""
        return self.store.max_rank(self._as_scope(target))

    def lowest_rank(self, target: Optional[ScopeOrRecord] = None) -> int:
        """范围内最小排序值，空范围返回 0"""
        return self.store.min_rank(self._as_scope(target))

    def current_rank(self, record: Any) -> int:
        """当前排序值

        Raises:
            NotResolvableError: 分组排序的记录尚未关联排序记录
        """
        return self.store.read_rank(self._rank_row(record))

    def is_rank(self, record: Any, value: int) -> bool:
        return self.current_rank(record) == int(value)

    def is_first(self, record: Any) -> bool:
        return self.is_rank(record, self.lowest_rank(record))

    def is_last(self, record: Any) -> bool:
        return self.is_rank(record, self.highest_rank(record))

    def ordered(self, target: Optional[ScopeOrRecord] = None, descending: bool = False) -> List[Any]:
        """按排序值返回记录列表"""
        return self.store.ordered(self._as_scope(target), descending=descending)

    # ==================== 新建记录 ====================

    def assign_initial_rank(self, record: Any) -> int:
        """为新记录分配排序值（当前最大值 + 1）

        直接排序时只设置字段，由调用方保存记录；
        分组排序时创建（或更新）关联排序记录，记录本身需已保存。

        Returns:
            分配的排序值
        """
        rank = self.highest_rank(record) + 1
        if self.grouped:
            self.resolver.create_group(record, {self.options.order_column_name: rank})
        else:
            self.store.stage_rank(record, rank)
        logger.debug(f"{self.entity.__name__} 新记录排序值: {rank}")
        return rank

    def before_persist(self, record: Any) -> Optional[int]:
        """保存前调用：直接排序时分配排序值"""
        if not self.options.sort_when_creating or self.grouped:
            return None
        return self.assign_initial_rank(record)

    def after_persist(self, record: Any) -> Optional[int]:
        """保存后调用：分组排序时创建关联排序记录"""
        if not self.options.sort_when_creating or not self.grouped:
            return None
        return self.assign_initial_rank(record)

    # ==================== 修改 ====================

    def set_rank(self, record: Any, value: int) -> None:
        """写入排序值

        Raises:
            NotResolvableError: 分组排序的记录尚未关联排序记录
        """
        self.store.write_rank(self._rank_row(record), value)

    def move_up(self, record: Any) -> Any:
        """与排序值更小的相邻记录交换，已是第一个时不做处理"""
        return self._move_adjacent(record, Direction.LOWER)

    def move_down(self, record: Any) -> Any:
        """与排序值更大的相邻记录交换，已是最后一个时不做处理"""
        return self._move_adjacent(record, Direction.HIGHER)

    def _move_adjacent(self, record: Any, direction: Direction) -> Any:
        scope = self.scope_of(record)
        with self._atomic(scope):
            neighbor = self.store.find_neighbor(scope, self.current_rank(record), direction)
            if neighbor is None:
                logger.debug(f"{record!r} 没有 {direction.value} 方向的相邻记录")
                return record
            self._swap(record, neighbor)
        return record

    def swap(self, a: Any, b: Optional[Any]) -> Any:
        """交换两条记录的排序值，b 为 None 时不做处理

        Returns:
            a
        """
        if b is None:
            return a
        with self._atomic(self.scope_of(a)):
            self._swap(a, b)
        return a

    def _swap(self, a: Any, b: Any) -> None:
        other_rank = self.current_rank(b)
        self.set_rank(b, self.current_rank(a))
        self.set_rank(a, other_rank)
        logger.debug(f"交换排序值: {a!r} <-> {b!r}")

    def move_to_start(self, record: Any) -> Any:
        """置顶

        记录取得范围内的最小排序值，原先排在它前面的记录依次后移一位。
        """
        scope = self.scope_of(record)
        with self._atomic(scope):
            if self.is_first(record):
                return record
            old_rank = self.current_rank(record)
            self.set_rank(record, self.store.min_rank(scope))
            shifted = self.store.increment_ranks(scope, exclude=record, threshold=old_rank)
            logger.debug(f"{record!r} 置顶，{shifted} 条记录后移")
        return record

    def move_to_end(self, record: Any) -> Any:
        """置底

        记录取得范围内的最大排序值，原先排在它后面的记录依次前移一位。
        """
        scope = self.scope_of(record)
        with self._atomic(scope):
            if self.is_last(record):
                return record
            old_rank = self.current_rank(record)
            self.set_rank(record, self.store.max_rank(scope))
            shifted = self.store.decrement_ranks(scope, exclude=record, threshold=old_rank)
            logger.debug(f"{record!r} 置底，{shifted} 条记录前移")
        return record

    # ==================== 批量重排序 ====================

    def bulk_reorder(
        self,
        ids: Sequence,
        start_rank: int = 1,
        key_field: Optional[str] = None,
        filter_fn: Optional[Callable[[Any], Any]] = None,
    ) -> int:
        """按给定顺序重新编号

        ids 中第 i 个标识对应的记录排序值设为 start_rank + i。
        逐条按顺序更新，不过滤软删除记录，需要时通过 filter_fn 排除。

        Args:
            ids: 标识列表（列表、元组等有序序列）
            start_rank: 起始排序值
            key_field: 匹配字段名，None 表示主键
            filter_fn: 附加过滤条件，由存储决定参数形式

        Returns:
            更新的记录数

        Raises:
            InvalidInputError: ids 不是有序序列
        """
        if isinstance(ids, (str, bytes)) or not isinstance(ids, Sequence):
            raise InvalidInputError(ids)

        scope = self.entity_scope()
        updated = 0
        with self._atomic(scope):
            for offset, key_value in enumerate(ids):
                updated += self.store.update_rank_by_key(
                    scope, key_field, key_value, start_rank + offset, filter_fn
                )
        logger.debug(f"{self.entity.__name__} 批量重排序: {len(ids)} 个标识，更新 {updated} 条")

        if self.notifier is not None:
            self.notifier.notify(self.entity.__name__)
        return updated

    def bulk_reorder_by_column(self, key_field: str, ids: Sequence, start_rank: int = 1) -> int:
        """按其他唯一字段批量重排序"""
        return self.bulk_reorder(ids, start_rank=start_rank, key_field=key_field)


__all__ = [
    "OrderingEngine",
]
