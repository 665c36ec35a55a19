"""排序存储实现

- ORMRankStore / RelationshipGroupResolver: SQLAlchemy 存储
- MemoryRankStore / MemoryGroupResolver: 内存存储
"""

from .memory import MemoryGroupResolver, MemoryRankStore
from .orm import ORMRankStore, RelationshipGroupResolver

__all__ = [
    "ORMRankStore",
    "RelationshipGroupResolver",
    "MemoryRankStore",
    "MemoryGroupResolver",
]
