"""Feed 格式解析."""

from feedloom.feed.parser import FeedParseError, extract_feed_items, parse_feed
from feedloom.feed.types import (
    AtomEntry,
    AtomFeed,
    FeedItem,
    JsonFeed,
    JsonItem,
    ParsedFeed,
    RdfFeed,
    RdfItem,
    RssFeed,
    RssItem,
)

__all__ = [
    "AtomEntry",
    "AtomFeed",
    "FeedItem",
    "FeedParseError",
    "JsonFeed",
    "JsonItem",
    "ParsedFeed",
    "RdfFeed",
    "RdfItem",
    "RssFeed",
    "RssItem",
    "extract_feed_items",
    "parse_feed",
]
