"""SQLAlchemy 排序存储

- ORMRankStore: 基于 SQLAlchemy 2.x 的 RankStore 实现
- RelationshipGroupResolver: 通过一对一关系解析关联排序记录

排序字段在构造时解析为模型属性，之后不再按字符串查找。
范围查询排除软删除记录（模型有 deleted_at 字段时），批量重排序不排除。

使用示例:
    # 直接排序
    store = ORMRankStore(session, Banner, SortableOptions())

    # 分组排序：排序值保存在 ProductPosition.order_column 上
    options = SortableOptions(order_relationship="position")
    store = ORMRankStore(session, Product, options)
    resolver = RelationshipGroupResolver(Product, "position", session)
"""

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from sqlalchemy import func, inspect as sa_inspect, select, update
from sqlalchemy.orm import Session

from ysort.log import get_logger

from ..exceptions import SortableConfigError
from ..interfaces import Direction, GroupHandle, GroupResolver, RankScope, RankStore
from ..options import SortableOptions

logger = get_logger("ysort.sortable.orm")


def _scalar_relationship(entity: type, relationship: str):
    """获取一对一关系属性，不存在或为集合关系时报错"""
    mapper = sa_inspect(entity)
    prop = mapper.relationships.get(relationship)
    if prop is None:
        raise SortableConfigError(f"{entity.__name__} 没有关系 {relationship!r}")
    if prop.uselist:
        raise SortableConfigError(
            f"{entity.__name__}.{relationship} 是集合关系，排序关系需要 uselist=False"
        )
    return prop


def _primary_key(model: type):
    mapper = sa_inspect(model)
    column = mapper.primary_key[0]
    return getattr(model, mapper.get_property_by_column(column).key)


class ORMRankStore(RankStore):
    """SQLAlchemy 排序存储

    Args:
        session: SQLAlchemy 会话
        entity: 参与排序的模型类
        options: 排序配置
        soft_delete_column_name: 软删除标记字段名，None 表示不过滤

    Raises:
        SortableConfigError: 排序字段或关系不存在
    """

    def __init__(
        self,
        session: Session,
        entity: type,
        options: Optional[SortableOptions] = None,
        soft_delete_column_name: Optional[str] = "deleted_at",
    ):
        self.session = session
        self.entity = entity
        self.options = options or SortableOptions()

        if self.options.grouped:
            prop = _scalar_relationship(entity, self.options.order_relationship)
            self.rank_model = prop.mapper.class_
            self._relationship_attr = getattr(entity, prop.key)
        else:
            self.rank_model = entity
            self._relationship_attr = None

        self.rank_column = getattr(self.rank_model, self.options.order_column_name, None)
        if self.rank_column is None:
            raise SortableConfigError(
                f"{self.rank_model.__name__} 没有排序字段 {self.options.order_column_name!r}"
            )
        self._rank_key = self.rank_column.key

        self._entity_pk = _primary_key(entity)
        self._rank_pk = _primary_key(self.rank_model)
        self._deleted_column = (
            getattr(entity, soft_delete_column_name, None) if soft_delete_column_name else None
        )
        self._timestamp_column = getattr(self.rank_model, self.options.timestamp_column_name, None)

    # ==================== 查询构造 ====================

    def _from_entity(self, stmt):
        stmt = stmt.select_from(self.entity)
        if self._relationship_attr is not None:
            stmt = stmt.join(self._relationship_attr)
        return stmt

    def _where_scope(self, stmt, scope: RankScope, include_deleted: bool = False):
        for field, value in scope.partition:
            column = getattr(self.entity, field)
            if value is None:
                stmt = stmt.where(column.is_(None))
            else:
                stmt = stmt.where(column == value)
        if not include_deleted and self._deleted_column is not None:
            stmt = stmt.where(self._deleted_column.is_(None))
        return stmt

    def _scoped(self, *columns, scope: RankScope):
        return self._where_scope(self._from_entity(select(*columns)), scope)

    def _shift(self, scope: RankScope, exclude: Any, condition, delta: int) -> int:
        exclude_pk = getattr(exclude, self._entity_pk.key)
        if self._relationship_attr is None:
            stmt = update(self.entity).where(condition, self._entity_pk != exclude_pk)
            stmt = self._where_scope(stmt, scope)
        else:
            ids = (
                self._scoped(self._rank_pk, scope=scope)
                .where(condition, self._entity_pk != exclude_pk)
                .correlate(None)
            )
            stmt = update(self.rank_model).where(self._rank_pk.in_(ids))
        stmt = (
            stmt.values({self.rank_column: self.rank_column + delta})
            .execution_options(synchronize_session="fetch")
        )
        return self.session.execute(stmt).rowcount

    # ==================== RankStore ====================

    def max_rank(self, scope: RankScope) -> int:
        return int(self.session.scalar(self._scoped(func.max(self.rank_column), scope=scope)) or 0)

    def min_rank(self, scope: RankScope) -> int:
        return int(self.session.scalar(self._scoped(func.min(self.rank_column), scope=scope)) or 0)

    def read_rank(self, row: Any) -> int:
        return int(getattr(row, self._rank_key) or 0)

    def write_rank(self, row: Any, value: int) -> None:
        setattr(row, self._rank_key, value)
        self.session.add(row)
        self.session.flush()

    def stage_rank(self, row: Any, value: int) -> None:
        setattr(row, self._rank_key, value)

    def find_neighbor(self, scope: RankScope, current_rank: int, direction: Direction) -> Optional[Any]:
        stmt = self._scoped(self.entity, scope=scope)
        if direction == Direction.HIGHER:
            stmt = stmt.where(self.rank_column > current_rank).order_by(self.rank_column.asc())
        else:
            stmt = stmt.where(self.rank_column < current_rank).order_by(self.rank_column.desc())
        return self.session.scalars(stmt.limit(1)).first()

    def increment_ranks(self, scope: RankScope, exclude: Any, threshold: int) -> int:
        return self._shift(scope, exclude, self.rank_column <= threshold, 1)

    def decrement_ranks(self, scope: RankScope, exclude: Any, threshold: int) -> int:
        return self._shift(scope, exclude, self.rank_column > threshold, -1)

    def update_rank_by_key(
        self,
        scope: RankScope,
        key_field: Optional[str],
        key_value: Any,
        new_rank: int,
        filter_fn: Optional[Callable[[Any], Any]] = None,
    ) -> int:
        """按键字段写入排序值

        filter_fn 接收用于匹配记录的语句（直接排序时是 UPDATE，
        分组排序时是选出关联记录主键的 SELECT），返回追加 where 条件后的语句。
        """
        key_column = getattr(self.entity, key_field) if key_field else self._entity_pk

        values: Dict[Any, Any] = {self.rank_column: new_rank}
        if self.options.ignore_timestamps and self._timestamp_column is not None:
            # 显式赋原值，阻止 onupdate 刷新修改时间
            values[self._timestamp_column] = self._timestamp_column

        if self._relationship_attr is None:
            stmt = update(self.entity).where(key_column == key_value)
            if filter_fn is not None:
                stmt = filter_fn(stmt)
        else:
            ids = self._from_entity(select(self._rank_pk)).where(key_column == key_value).correlate(None)
            if filter_fn is not None:
                ids = filter_fn(ids)
            stmt = update(self.rank_model).where(self._rank_pk.in_(ids))

        stmt = stmt.values(values).execution_options(synchronize_session="fetch")
        return self.session.execute(stmt).rowcount

    def ordered(self, scope: RankScope, descending: bool = False) -> List[Any]:
        order = self.rank_column.desc() if descending else self.rank_column.asc()
        stmt = self._scoped(self.entity, scope=scope).order_by(order, self._entity_pk)
        return list(self.session.scalars(stmt))

    @contextmanager
    def atomic(self, scope: RankScope) -> Iterator[None]:
        """保存点内执行，并对范围内的排序记录加行锁

        出错时回滚到保存点，外层事务不受影响。
        """
        with self.session.begin_nested():
            lock = self._scoped(self._rank_pk, scope=scope).with_for_update()
            self.session.execute(lock).all()
            logger.debug(f"{self.entity.__name__} 已锁定排序范围 {scope.filters()}")
            yield


class RelationshipGroupResolver(GroupResolver):
    """通过一对一关系解析关联排序记录

    Args:
        entity: 参与排序的模型类
        relationship: 关系名（uselist=False）
        session: SQLAlchemy 会话

    Raises:
        SortableConfigError: 关系不存在或为集合关系
    """

    def __init__(self, entity: type, relationship: str, session: Session):
        prop = _scalar_relationship(entity, relationship)
        self.entity = entity
        self.session = session
        self.group_model = prop.mapper.class_
        self._relationship = prop.key

    @property
    def relationship(self) -> str:
        return self._relationship

    def resolve_group(self, record: Any) -> GroupHandle:
        return GroupHandle(self._relationship, getattr(record, self._relationship))

    def create_group(self, record: Any, values: Dict[str, Any]) -> Any:
        row = getattr(record, self._relationship)
        if row is None:
            row = self.group_model(**values)
            setattr(record, self._relationship, row)
        else:
            for name, value in values.items():
                setattr(row, name, value)
        self.session.add(record)
        self.session.flush()
        return row


__all__ = [
    "ORMRankStore",
    "RelationshipGroupResolver",
]
