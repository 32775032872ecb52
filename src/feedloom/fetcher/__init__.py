"""Feed 下载模块."""

from feedloom.fetcher.client import (
    FeedFetcher,
    FeedFetchError,
    fetch_and_parse_feed,
)
from feedloom.fetcher.og_image import extract_og_image

__all__ = [
    "FeedFetchError",
    "FeedFetcher",
    "extract_og_image",
    "fetch_and_parse_feed",
]
