"""Atom 讨论类 <link>."""

from feedloom.comments.base import CommentLinkExtractor, ExtractedCommentLink
from feedloom.feed import AtomEntry, FeedItem

# RFC 4685 的 replies 以及常见的非标准写法
COMMENT_RELS = frozenset({"replies", "comments", "discussion"})


class AtomLinkExtractor(CommentLinkExtractor):
    """读取 rel 为 replies/comments/discussion 的 Atom 链接."""

    priority = 20

    def can_handle(self, item: FeedItem) -> bool:
        return isinstance(item, AtomEntry) and bool(item.links)

    def extract(self, item: FeedItem) -> ExtractedCommentLink | None:
        if not isinstance(item, AtomEntry):
            return None

        for link in item.links:
            if link.href and (link.rel or "").lower() in COMMENT_RELS:
                return ExtractedCommentLink(url=link.href, source="atom-link")
        return None
