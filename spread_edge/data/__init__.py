"""
Data layer for the edge engine.

Provides the data-access interfaces, the in-memory reference store and the
per-run rating lookup.
"""
from .ratings import RatingLookup, ResolvedRating, regress_prior_season
from .sources import (
    DataSourceError,
    DateRange,
    EngineSink,
    InMemoryStore,
    LineDataSource,
)

__all__ = [
    "RatingLookup",
    "ResolvedRating",
    "regress_prior_season",
    "DataSourceError",
    "DateRange",
    "EngineSink",
    "InMemoryStore",
    "LineDataSource",
]
