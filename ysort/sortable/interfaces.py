"""排序引擎依赖的接口

- RankStore: 排序值的读写与范围查询
- GroupResolver: 排序值保存在关联记录上时，负责找到 / 创建该关联记录
- ChangeNotifier: 批量重排序完成后的通知

以及描述排序范围的值对象 RankScope 和 GroupHandle。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ContextManager, Dict, List, Optional, Tuple


class Direction(str, Enum):
    """相邻记录的查找方向"""
    LOWER = "lower"
    HIGHER = "higher"


@dataclass(frozen=True)
class RankScope:
    """排序范围

    同一范围内的排序值互不相同，不同范围之间互不影响。

    Attributes:
        entity: 参与排序的模型类
        relationship: 保存排序值的关联关系名，None 表示排序值在记录自身
        partition: 分组字段及其取值，如 (("category_id", 1),)
    """
    entity: type
    relationship: Optional[str] = None
    partition: Tuple[Tuple[str, Any], ...] = ()

    @property
    def grouped(self) -> bool:
        return self.relationship is not None

    def filters(self) -> Dict[str, Any]:
        """分组过滤条件"""
        return dict(self.partition)

    def contains(self, record: Any) -> bool:
        """按实体类型和分组字段判断记录是否属于该范围"""
        if not isinstance(record, self.entity):
            return False
        return all(getattr(record, field, None) == value for field, value in self.partition)


@dataclass
class GroupHandle:
    """关联排序记录的句柄

    Attributes:
        relationship: 关系名
        row: 保存排序值的关联记录，未关联时为 None
    """
    relationship: str
    row: Any = None

    @property
    def linked(self) -> bool:
        return self.row is not None


class RankStore(ABC):
    """排序值存储

    ``row`` 指保存排序值的对象：直接排序时是记录本身，分组排序时是关联记录。
    范围查询返回的始终是参与排序的记录（scope.entity 的实例）。
    """

    @abstractmethod
    def max_rank(self, scope: RankScope) -> int:
        """范围内最大排序值，范围为空时返回 0"""

    @abstractmethod
    def min_rank(self, scope: RankScope) -> int:
        """范围内最小排序值，范围为空时返回 0"""

    @abstractmethod
    def read_rank(self, row: Any) -> int:
        """读取排序值"""

    @abstractmethod
    def write_rank(self, row: Any, value: int) -> None:
        """写入排序值并持久化"""

    @abstractmethod
    def stage_rank(self, row: Any, value: int) -> None:
        """只设置排序值，不持久化（用于尚未保存的新记录）"""

    @abstractmethod
    def find_neighbor(self, scope: RankScope, current_rank: int, direction: Direction) -> Optional[Any]:
        """查找排序值紧邻 current_rank 的记录，没有时返回 None"""

    @abstractmethod
    def increment_ranks(self, scope: RankScope, exclude: Any, threshold: int) -> int:
        """范围内排序值 <= threshold 的记录（exclude 除外）排序值加一，返回更新数"""

    @abstractmethod
    def decrement_ranks(self, scope: RankScope, exclude: Any, threshold: int) -> int:
        """范围内排序值 > threshold 的记录（exclude 除外）排序值减一，返回更新数"""

    @abstractmethod
    def update_rank_by_key(
        self,
        scope: RankScope,
        key_field: Optional[str],
        key_value: Any,
        new_rank: int,
        filter_fn: Optional[Callable[[Any], Any]] = None,
    ) -> int:
        """按键字段定位记录并写入排序值，返回更新数

        key_field 为 None 时使用主键。不过滤软删除记录。
        """

    @abstractmethod
    def ordered(self, scope: RankScope, descending: bool = False) -> List[Any]:
        """按排序值返回范围内的记录"""

    @abstractmethod
    def atomic(self, scope: RankScope) -> ContextManager[None]:
        """在一个原子单元内执行多步操作，出错时撤销"""


class GroupResolver(ABC):
    """关联排序记录解析器"""

    @property
    @abstractmethod
    def relationship(self) -> str:
        """关系名"""

    @abstractmethod
    def resolve_group(self, record: Any) -> GroupHandle:
        """返回记录的关联排序记录句柄"""

    @abstractmethod
    def create_group(self, record: Any, values: Dict[str, Any]) -> Any:
        """创建关联排序记录并关联到 record，已存在时更新字段值"""


class ChangeNotifier(ABC):
    """排序变更通知"""

    @abstractmethod
    def notify(self, entity_type_name: str) -> None:
        """批量重排序完成后调用"""


__all__ = [
    "Direction",
    "RankScope",
    "GroupHandle",
    "RankStore",
    "GroupResolver",
    "ChangeNotifier",
]
