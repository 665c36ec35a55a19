"""ORM模块

提供排序功能依赖的模型基础：
- Base: SQLAlchemy 声明基类
- CoreModel: 核心模型基类（ID、时间戳、软删除标记、save）
- 数据库会话管理

使用示例:
    from ysort.orm import CoreModel, init_database, db_session_scope

    init_database("sqlite:///./app.db")

    class Banner(CoreModel):
        title: Mapped[str] = mapped_column(String(100))
"""

from .core_model import Base, CoreModel, to_snake_case
from .db_session import (
    db_manager,
    init_database,
    get_engine,
    db_session_scope,
)

__all__ = [
    "Base",
    "CoreModel",
    "to_snake_case",
    "db_manager",
    "init_database",
    "get_engine",
    "db_session_scope",
]
