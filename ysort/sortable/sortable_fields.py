"""排序字段定义

提供标准的排序字段定义 Mixin，简化模型定义。

使用示例:
    from ysort.orm import CoreModel
    from ysort.sortable import SortFieldMixin, SortableMixin

    class Banner(CoreModel, SortFieldMixin, SortableMixin):
        __tablename__ = "banner"

        title = mapped_column(String(100))
        # order_column 字段由 SortFieldMixin 自动提供
"""

from typing import Optional

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column


class SortFieldMixin:
    """排序字段 Mixin

    提供标准的 order_column 字段定义。

    字段说明:
        - order_column: 排序值，值越小越靠前；新建记录时由 SortableMixin 分配，
          分配前为空

    使用示例:
        class Banner(CoreModel, SortFieldMixin, SortableMixin):
            __tablename__ = "banner"
            title: Mapped[str]

        # 查询时按排序字段排序
        Banner.query.order_by(Banner.order_column).all()
    """

    order_column: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        index=True,
        comment="排序值"
    )


__all__ = [
    "SortFieldMixin",
]
