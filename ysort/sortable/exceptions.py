"""
排序模块异常定义

异常层级:
    SortableError (基类)
    ├── InvalidInputError     - 批量重排序的参数不是有序序列
    ├── NotResolvableError    - 分组排序的记录缺少关联的排序记录
    ├── SortableConfigError   - 排序配置或关系定义错误
    └── ListenerError         - 排序事件监听器执行失败（只收集不抛出）

存储层异常（数据库连接、约束冲突等）不做包装，原样抛给调用方，
``StoreFailure`` 仅作为统一捕获时的别名。
"""

from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError


class SortableError(Exception):
    """排序操作错误基类

    Attributes:
        message: 错误消息
        code: 错误码
        details: 详细信息
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """转换为字典（用于API响应）"""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidInputError(SortableError):
    """无效输入

    批量重排序要求传入列表、元组等可索引的有限序列，
    生成器、集合、字符串等都会被拒绝。
    """

    def __init__(self, value: Any):
        super().__init__(
            message=f"批量重排序需要传入列表或元组等有序序列，实际为 {type(value).__name__}",
            code="INVALID_INPUT",
            details={"type": type(value).__name__},
        )


class NotResolvableError(SortableError):
    """无法解析排序记录

    模型通过关联关系保存排序值，但当前记录尚未关联排序记录。
    """

    def __init__(self, record: Any, relationship: str):
        super().__init__(
            message=f"{record!r} 未关联排序记录（关系: {relationship}）",
            code="NOT_RESOLVABLE",
            details={"relationship": relationship},
        )


class SortableConfigError(SortableError):
    """排序配置错误"""
    pass


class ListenerError(SortableError):
    """排序事件监听器执行错误

    包含监听器名称和原始异常，由事件分发器收集，不会向调用方抛出。
    """

    def __init__(self, listener_name: str, original_error: Exception):
        self.listener_name = listener_name
        self.original_error = original_error
        super().__init__(
            message=f"监听器 '{listener_name}' 执行失败: {original_error}",
            code="LISTENER_FAILED",
            details={"listener": listener_name},
        )

    def __repr__(self) -> str:
        return f"ListenerError(listener_name={self.listener_name!r}, original_error={self.original_error!r})"


# 存储层异常原样抛出，此处只提供别名
StoreFailure = SQLAlchemyError


__all__ = [
    "SortableError",
    "InvalidInputError",
    "NotResolvableError",
    "SortableConfigError",
    "ListenerError",
    "StoreFailure",
]
