"""排序事件

批量重排序完成后，引擎通过 ChangeNotifier.notify(模型名) 发出通知。
本模块提供两个实现：

- SortedEventDispatcher: 转换为 ModelSortedEvent 并分发给已订阅的监听器
- LoggingChangeNotifier: 只写日志

使用示例:
    from ysort.sortable import on_model_sorted

    @on_model_sorted
    def refresh_cache(event):
        if event.is_for(Banner):
            cache.delete("banners")
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, List

from ysort.log import get_logger

from .exceptions import ListenerError
from .interfaces import ChangeNotifier

logger = get_logger("ysort.sortable.events")

Listener = Callable[["ModelSortedEvent"], Any]


@dataclass(frozen=True)
class ModelSortedEvent:
    """模型批量重排序完成事件

    Attributes:
        model_name: 模型类名
        occurred_at: 事件时间
    """
    model_name: str
    occurred_at: datetime = field(default_factory=datetime.now)

    def is_for(self, model: Any) -> bool:
        """判断事件是否属于指定模型

        Args:
            model: 模型类、模型实例或模型类名
        """
        if isinstance(model, str):
            name = model
        elif isinstance(model, type):
            name = model.__name__
        else:
            name = type(model).__name__
        return name == self.model_name


class SortedEventDispatcher(ChangeNotifier):
    """排序事件分发器

    监听器按订阅顺序执行。某个监听器失败时记录日志并继续执行其余监听器，
    排序结果已经写入，不因通知失败而抛出异常。
    """

    def __init__(self):
        self._listeners: List[Listener] = []
        self.last_errors: List[ListenerError] = []

    @property
    def listeners(self) -> List[Listener]:
        return list(self._listeners)

    def subscribe(self, listener: Listener) -> Listener:
        """订阅事件（可作为装饰器使用）"""
        if listener not in self._listeners:
            self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def clear(self) -> None:
        self._listeners.clear()
        self.last_errors = []

    def dispatch(self, event: ModelSortedEvent) -> List[ListenerError]:
        """分发事件

        Returns:
            执行失败的监听器异常列表
        """
        errors = []
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                name = getattr(listener, "__name__", repr(listener))
                errors.append(ListenerError(name, e))
                logger.error(f"排序事件监听器 {name} 执行失败: {e}")
        self.last_errors = errors
        return errors

    def notify(self, entity_type_name: str) -> None:
        self.dispatch(ModelSortedEvent(entity_type_name))


class LoggingChangeNotifier(ChangeNotifier):
    """只记录日志的通知器"""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def notify(self, entity_type_name: str) -> None:
        logger.log(self.level, f"{entity_type_name} 已批量重排序")


# 全局分发器，SortableMixin 默认使用
sorted_event_dispatcher = SortedEventDispatcher()


def on_model_sorted(listener: Listener) -> Listener:
    """订阅全局排序事件（装饰器）"""
    return sorted_event_dispatcher.subscribe(listener)


__all__ = [
    "ModelSortedEvent",
    "SortedEventDispatcher",
    "LoggingChangeNotifier",
    "sorted_event_dispatcher",
    "on_model_sorted",
]
