"""评论链接提取器注册表."""

import logging
from collections.abc import Iterable

from feedloom.comments.atom_link import AtomLinkExtractor
from feedloom.comments.base import CommentLinkExtractor, ExtractedCommentLink
from feedloom.comments.html_pattern import HtmlPatternExtractor
from feedloom.comments.rss_element import RssElementExtractor
from feedloom.feed import FeedItem

logger = logging.getLogger(__name__)


class CommentLinkRegistry:
    """按优先级依次执行提取器，返回第一个结果."""

    def __init__(self, extractors: Iterable[CommentLinkExtractor]) -> None:
        self.extractors = sorted(extractors, key=lambda e: e.priority)

    def extract(self, item: FeedItem) -> ExtractedCommentLink | None:
        for extractor in self.extractors:
            try:
                if not extractor.can_handle(item):
                    continue
                result = extractor.extract(item)
            except Exception as e:
                logger.warning(f"评论链接提取器 {type(extractor).__name__} 出错: {e}")
                continue
            if result and result.url:
                return result
        return None


default_registry = CommentLinkRegistry(
    [
        RssElementExtractor(),
        AtomLinkExtractor(),
        HtmlPatternExtractor(),
    ]
)


def extract_comment_link(
    item: FeedItem, registry: CommentLinkRegistry | None = None
) -> str | None:
    """提取条目的讨论页 URL."""
    result = (registry or default_registry).extract(item)
    return result.url if result else None
