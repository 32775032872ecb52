"""核心业务逻辑."""

from feedloom.core.ingest import (
    FetchErrorRecord,
    FetchResult,
    FetchSingleResult,
    fetch_all_feeds,
    fetch_single_feed,
)
from feedloom.core.maintenance import prune_articles
from feedloom.core.store import ArticleStore, StoreResult
from feedloom.core.tracing import LoggingTracer, Tracer

__all__ = [
    "ArticleStore",
    "FetchErrorRecord",
    "FetchResult",
    "FetchSingleResult",
    "LoggingTracer",
    "StoreResult",
    "Tracer",
    "fetch_all_feeds",
    "fetch_single_feed",
    "prune_articles",
]
