"""Storage abstraction layer."""

from .base import Filter, Storage, eq, gt, gte, in_, lt, lte, neq
from .inmemory import InMemoryStorage
from .sqlalchemy_adapter import SQLAlchemyStorage

__all__ = [
    "Storage",
    "InMemoryStorage",
    "SQLAlchemyStorage",
    "Filter",
    "eq",
    "neq",
    "gt",
    "gte",
    "lt",
    "lte",
    "in_",
]
