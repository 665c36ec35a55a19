"""测试辅助工具模块

提供测试专用的模型和辅助函数，避免在核心代码中添加测试专用方法。
"""

from .memory_records import (
    Card,
    Slot,
    SlottedCard,
    memory_engine_for,
    make_cards,
    ranks_of,
)

__all__ = [
    # 内存存储测试记录
    'Card',
    'Slot',
    'SlottedCard',
    'memory_engine_for',
    'make_cards',
    'ranks_of',
]
