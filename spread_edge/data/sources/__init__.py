"""
Data-access interfaces and implementations.

Available sources:
- LineDataSource / EngineSink: abstract read and write interfaces
- InMemoryStore: dict-backed implementation loadable from polars frames
"""
from .base import (
    DataNotAvailableError,
    DataSourceError,
    DateRange,
    EngineSink,
    LineDataSource,
    RateLimitError,
)
from .memory import InMemoryStore

__all__ = [
    "DataNotAvailableError",
    "DataSourceError",
    "DateRange",
    "EngineSink",
    "LineDataSource",
    "RateLimitError",
    "InMemoryStore",
]
