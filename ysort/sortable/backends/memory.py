"""内存排序存储

不依赖数据库，记录保存在列表中。用于测试和不需要持久化的场景，
行为与 ORM 存储保持一致：

- 范围查询跳过软删除记录（deleted_at 不为空）和没有排序值的记录
- 批量重排序按键匹配，不跳过软删除记录
- 写入排序值时刷新修改时间，批量重排序可通过 ignore_timestamps 关闭

使用示例:
    from ysort.sortable import OrderingEngine
    from ysort.sortable.backends import MemoryRankStore

    store = MemoryRankStore()
    engine = OrderingEngine(Item, store)

    item = Item(id=1)
    engine.before_persist(item)
    store.add(item)
"""

import threading
from contextlib import contextmanager
from datetime import datetime
from types import SimpleNamespace
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from ..interfaces import Direction, GroupHandle, GroupResolver, RankScope, RankStore
from ..options import SortableOptions


class MemoryRankStore(RankStore):
    """内存排序存储

    Args:
        options: 排序配置
        key_name: 主键字段名
        soft_delete_column_name: 软删除标记字段名，None 表示不区分软删除
    """

    def __init__(
        self,
        options: Optional[SortableOptions] = None,
        key_name: str = "id",
        soft_delete_column_name: Optional[str] = "deleted_at",
    ):
        self.options = options or SortableOptions()
        self.key_name = key_name
        self.soft_delete_column_name = soft_delete_column_name
        self._rank_name = self.options.order_column_name
        self._timestamp_name = self.options.timestamp_column_name
        self._records: List[Any] = []
        self._lock = threading.RLock()

    # ==================== 记录管理 ====================

    @property
    def records(self) -> List[Any]:
        return list(self._records)

    def add(self, *records: Any) -> None:
        for record in records:
            if not any(existing is record for existing in self._records):
                self._records.append(record)

    def remove(self, record: Any) -> None:
        self._records = [existing for existing in self._records if existing is not record]

    # ==================== 内部方法 ====================

    def _row_of(self, record: Any, relationship: Optional[str]) -> Any:
        if relationship is None:
            return record
        return getattr(record, relationship, None)

    def _rank_of(self, row: Any) -> Optional[int]:
        return getattr(row, self._rank_name, None)

    def _is_deleted(self, record: Any) -> bool:
        if not self.soft_delete_column_name:
            return False
        return getattr(record, self.soft_delete_column_name, None) is not None

    def _touch(self, row: Any) -> None:
        if hasattr(row, self._timestamp_name):
            setattr(row, self._timestamp_name, datetime.now())

    def _members(self, scope: RankScope) -> List[Tuple[Any, Any]]:
        """范围内已排序的 (记录, 排序值所在对象) 列表"""
        members = []
        for record in self._records:
            if not scope.contains(record) or self._is_deleted(record):
                continue
            row = self._row_of(record, scope.relationship)
            if row is None or self._rank_of(row) is None:
                continue
            members.append((record, row))
        return members

    def _shift(self, scope: RankScope, exclude: Any, condition: Callable[[int], bool], delta: int) -> int:
        count = 0
        for record, row in self._members(scope):
            if record is exclude:
                continue
            rank = self._rank_of(row)
            if condition(rank):
                setattr(row, self._rank_name, rank + delta)
                self._touch(row)
                count += 1
        return count

    # ==================== RankStore ====================

    def max_rank(self, scope: RankScope) -> int:
        return max((self._rank_of(row) for _, row in self._members(scope)), default=0)

    def min_rank(self, scope: RankScope) -> int:
        return min((self._rank_of(row) for _, row in self._members(scope)), default=0)

    def read_rank(self, row: Any) -> int:
        return int(self._rank_of(row) or 0)

    def write_rank(self, row: Any, value: int) -> None:
        setattr(row, self._rank_name, value)
        self._touch(row)

    def stage_rank(self, row: Any, value: int) -> None:
        setattr(row, self._rank_name, value)

    def find_neighbor(self, scope: RankScope, current_rank: int, direction: Direction) -> Optional[Any]:
        if direction == Direction.HIGHER:
            candidates = [(self._rank_of(row), record) for record, row in self._members(scope)
                          if self._rank_of(row) > current_rank]
            pick = min
        else:
            candidates = [(self._rank_of(row), record) for record, row in self._members(scope)
                          if self._rank_of(row) < current_rank]
            pick = max
        if not candidates:
            return None
        return pick(candidates, key=lambda item: item[0])[1]

    def increment_ranks(self, scope: RankScope, exclude: Any, threshold: int) -> int:
        return self._shift(scope, exclude, lambda rank: rank <= threshold, 1)

    def decrement_ranks(self, scope: RankScope, exclude: Any, threshold: int) -> int:
        return self._shift(scope, exclude, lambda rank: rank > threshold, -1)

    def update_rank_by_key(
        self,
        scope: RankScope,
        key_field: Optional[str],
        key_value: Any,
        new_rank: int,
        filter_fn: Optional[Callable[[Any], bool]] = None,
    ) -> int:
        """按键字段写入排序值

        filter_fn 是作用于记录的判断函数，返回 False 的记录不更新。
        """
        key_name = key_field or self.key_name
        count = 0
        for record in self._records:
            if not isinstance(record, scope.entity):
                continue
            if getattr(record, key_name, None) != key_value:
                continue
            if filter_fn is not None and not filter_fn(record):
                continue
            row = self._row_of(record, scope.relationship)
            if row is None:
                continue
            setattr(row, self._rank_name, new_rank)
            if not self.options.ignore_timestamps:
                self._touch(row)
            count += 1
        return count

    def ordered(self, scope: RankScope, descending: bool = False) -> List[Any]:
        members = sorted(self._members(scope), key=lambda item: self._rank_of(item[1]), reverse=descending)
        return [record for record, _ in members]

    @contextmanager
    def atomic(self, scope: RankScope) -> Iterator[None]:
        """加锁执行，出错时恢复排序值和修改时间"""
        with self._lock:
            snapshot = self._snapshot(scope)
            try:
                yield
            except Exception:
                self._restore(snapshot)
                raise

    def _snapshot(self, scope: RankScope) -> List[Tuple[Any, Dict[str, Any]]]:
        snapshot = []
        for record in self._records:
            if not isinstance(record, scope.entity):
                continue
            row = self._row_of(record, scope.relationship)
            if row is None:
                continue
            values = {self._rank_name: self._rank_of(row)}
            if hasattr(row, self._timestamp_name):
                values[self._timestamp_name] = getattr(row, self._timestamp_name)
            snapshot.append((row, values))
        return snapshot

    def _restore(self, snapshot: List[Tuple[Any, Dict[str, Any]]]) -> None:
        for row, values in snapshot:
            for name, value in values.items():
                setattr(row, name, value)


class MemoryGroupResolver(GroupResolver):
    """内存关联排序记录解析器

    关联记录保存在记录的属性上，创建时调用 factory(**values)。

    Args:
        relationship: 保存关联记录的属性名
        factory: 关联记录工厂，默认 SimpleNamespace
    """

    def __init__(self, relationship: str, factory: Callable[..., Any] = SimpleNamespace):
        self._relationship = relationship
        self._factory = factory

    @property
    def relationship(self) -> str:
        return self._relationship

    def resolve_group(self, record: Any) -> GroupHandle:
        return GroupHandle(self._relationship, getattr(record, self._relationship, None))

    def create_group(self, record: Any, values: Dict[str, Any]) -> Any:
        row = getattr(record, self._relationship, None)
        if row is None:
            row = self._factory(**values)
            setattr(record, self._relationship, row)
        else:
            for name, value in values.items():
                setattr(row, name, value)
        return row


__all__ = [
    "MemoryRankStore",
    "MemoryGroupResolver",
]
