"""
ORM基础模型

提供主键、时间戳、软删除标记和常用的保存操作
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import ClassVar, Optional, TYPE_CHECKING

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import Mapped, Query, Session, declarative_base, declared_attr, mapped_column

if TYPE_CHECKING:
    from typing_extensions import Self


# 声明基类
Base = declarative_base()


def to_snake_case(name: str) -> str:
    """驼峰命名转下划线命名（支持连续大写缩写如 API、URL）

    Examples:
        >>> to_snake_case("OrderItem")
        'order_item'
        >>> to_snake_case("APIClient")
        'api_client'
    """
    result = re.sub(r'([A-Z\d]+)([A-Z][a-z])', r'\1_\2', name)
    result = re.sub(r'([a-z])([A-Z])', r'\1_\2', result)
    return result.lower()


class CoreModel(Base):
    """ORM基础模型类

    提供功能：
    - 自增主键 id
    - 自动表名生成（驼峰转下划线）
    - created_at / updated_at 时间戳，deleted_at 软删除标记
    - save / soft_delete / get 等常用操作

    使用示例:
        from ysort.orm import CoreModel, init_database

        init_database("sqlite:///./test.db")

        class Banner(CoreModel):
            title: Mapped[str] = mapped_column(String(100))

        banner = Banner(title="首页")
        banner.save(commit=True)
    """
    __abstract__ = True
    __allow_unmapped__ = True

    # query 属性由 init_database() 或测试通过 scoped_session.query_property() 设置
    if TYPE_CHECKING:
        query: ClassVar[Query[Self]]
    query = None

    _session: Session = None

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return to_snake_case(cls.__name__)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        server_default=func.now(),
        comment="创建时间"
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False),
        nullable=True,
        onupdate=func.now(),
        comment="更新时间"
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False),
        nullable=True,
        default=None,
        comment="删除时间（软删除标记）"
    )

    def __repr__(self):
        return f"<{self.__class__.__name__} id={self.id}>"

    @property
    def session(self) -> Session:
        """获取当前session

        优先从 query 属性获取 session，如果不可用则从全局 scoped_session 获取
        """
        if self._session is None:
            if self.__class__.query is not None:
                self._session = self.__class__.query.session
            else:
                from .db_session import db_manager
                self._session = db_manager.get_session()
        return self._session

    @property
    def is_deleted(self) -> bool:
        """是否已软删除"""
        return self.deleted_at is not None

    def save(self, commit: bool = False) -> Self:
        """保存对象（自动判断新增或更新）

        Args:
            commit: 是否立即提交，默认False（仅 flush）

        Returns:
            self: 返回自身，支持链式调用
        """
        self.session.add(self)
        if commit:
            self.session.commit()
        else:
            self.session.flush()
        return self

    def soft_delete(self, commit: bool = False) -> Self:
        """软删除（设置 deleted_at）"""
        self.deleted_at = datetime.now()
        return self.save(commit)

    @classmethod
    def get(cls, id: int):
        """根据ID获取对象，不存在返回None"""
        return cls.query.filter_by(id=id).first()
