"""排序选项

``SortableSettings`` 提供进程级默认值（环境变量 / YAML），
``SortableOptions`` 是合并模型级覆盖后的不可变配置，构造引擎时传入。

使用示例:
    from ysort.sortable import SortableOptions, configure_sortable
    from ysort.config import SortableSettings

    # 修改进程级默认值
    configure_sortable(SortableSettings(order_column_name="position"))

    # 合并模型级覆盖
    options = SortableOptions.resolve(overrides={"sort_group_by": "category_id"})
    options.order_column_name   # "position"
    options.sort_group_by       # ("category_id",)
"""

from dataclasses import dataclass, fields
from typing import Any, List, Mapping, Optional, Tuple, Union

from ysort.config.settings import SortableSettings

from .exceptions import SortableConfigError


_sortable_settings: Optional[SortableSettings] = None


def configure_sortable(settings: Optional[SortableSettings] = None) -> None:
    """设置进程级排序默认配置

    Args:
        settings: 排序配置，传 None 时恢复为读取环境变量
    """
    global _sortable_settings
    _sortable_settings = settings


def get_sortable_settings() -> SortableSettings:
    """获取进程级排序默认配置

    未调用 configure_sortable() 时每次都重新读取环境变量，不做缓存。
    """
    if _sortable_settings is not None:
        return _sortable_settings
    return SortableSettings()


def _normalize_group_by(group_by: Union[str, List[str], Tuple[str, ...], None]) -> Tuple[str, ...]:
    """分组字段统一为元组"""
    if not group_by:
        return ()
    if isinstance(group_by, str):
        return (group_by,)
    return tuple(group_by)


@dataclass(frozen=True)
class SortableOptions:
    """排序配置（不可变）

    Attributes:
        order_column_name: 保存排序值的字段名
        sort_when_creating: 新建记录时是否自动排到最后
        order_relationship: 排序值所在的关联关系名，None 表示直接排序
        ignore_timestamps: 批量重排序时是否保持修改时间不变
        sort_group_by: 分组字段元组
        atomic_operations: 多步操作是否在保存点内执行并锁行
        timestamp_column_name: 修改时间字段名
    """
    order_column_name: str = "order_column"
    sort_when_creating: bool = True
    order_relationship: Optional[str] = None
    ignore_timestamps: bool = False
    sort_group_by: Tuple[str, ...] = ()
    atomic_operations: bool = False
    timestamp_column_name: str = "updated_at"

    def __post_init__(self):
        object.__setattr__(self, "sort_group_by", _normalize_group_by(self.sort_group_by))
        if not self.order_column_name:
            raise SortableConfigError("order_column_name 不能为空")

    @property
    def grouped(self) -> bool:
        """排序值是否保存在关联记录上"""
        return bool(self.order_relationship)

    @classmethod
    def option_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def resolve(
        cls,
        settings: Optional[SortableSettings] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> "SortableOptions":
        """合并默认配置与覆盖项

        Args:
            settings: 默认配置，None 时使用 get_sortable_settings()
            overrides: 覆盖项（如模型的 ``__sortable__``）

        Raises:
            SortableConfigError: 覆盖项包含未知的选项名
        """
        if settings is None:
            settings = get_sortable_settings()

        names = cls.option_names()
        values = {name: getattr(settings, name) for name in names}

        overrides = dict(overrides or {})
        unknown = sorted(set(overrides) - set(names))
        if unknown:
            raise SortableConfigError(
                f"未知的排序选项: {', '.join(unknown)}",
                details={"unknown": unknown, "allowed": list(names)},
            )
        values.update(overrides)
        return cls(**values)


__all__ = [
    "SortableOptions",
    "configure_sortable",
    "get_sortable_settings",
]
