"""从 HTML 正文中匹配评论链接."""

import re
from typing import assert_never

from feedloom.comments.base import CommentLinkExtractor, ExtractedCommentLink
from feedloom.feed import AtomEntry, FeedItem, JsonItem, RdfItem, RssItem

# 依次尝试，命中即停
COMMENT_LINK_PATTERNS = [
    # Reddit: <a href="...">[comments]</a>
    re.compile(
        r"<a\s+(?:[^>]*?\s+)?href=[\"']([^\"']+)[\"'][^>]*?>\s*\[?\s*comments?\s*\]?\s*</a>",
        re.IGNORECASE,
    ),
    # Comments / Discussion / Discuss
    re.compile(
        r"<a\s+(?:[^>]*?\s+)?href=[\"']([^\"']+)[\"'][^>]*?>\s*(?:comments?|discussion|discuss)\s*</a>",
        re.IGNORECASE,
    ),
    # 链接文本里带评论图标或关键词
    re.compile(
        r"<a\s+(?:[^>]*?\s+)?href=[\"']([^\"']+)[\"'][^>]*?>[^<]*(?:💬|🗨️|comment|discussion)",
        re.IGNORECASE,
    ),
]


def candidate_texts(item: FeedItem) -> list[str]:
    """按 description -> content -> summary 的顺序列出可扫描的 HTML 字段."""
    match item:
        case RssItem():
            fields = [item.description, item.content_encoded]
        case AtomEntry():
            fields = [item.content_value, item.summary]
        case RdfItem():
            fields = [item.description, item.content_encoded]
        case JsonItem():
            fields = [item.content_html, item.summary]
        case _:
            assert_never(item)
    return [text for text in fields if text]


class HtmlPatternExtractor(CommentLinkExtractor):
    """在描述/正文里查找文本为 comments、discussion 等的链接."""

    priority = 30

    def can_handle(self, item: FeedItem) -> bool:
        return bool(candidate_texts(item))

    def extract(self, item: FeedItem) -> ExtractedCommentLink | None:
        for text in candidate_texts(item):
            for pattern in COMMENT_LINK_PATTERNS:
                found = pattern.search(text)
                if found:
                    return ExtractedCommentLink(url=found.group(1), source="html-pattern")
        return None
