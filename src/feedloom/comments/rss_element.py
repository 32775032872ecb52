"""RSS <comments> 元素."""

from feedloom.comments.base import CommentLinkExtractor, ExtractedCommentLink
from feedloom.feed import FeedItem, RssItem


class RssElementExtractor(CommentLinkExtractor):
    """读取 RSS 2.0 原生的 <comments> 元素（Hacker News、WordPress 等）."""

    priority = 10

    def can_handle(self, item: FeedItem) -> bool:
        return isinstance(item, RssItem) and bool(item.comments)

    def extract(self, item: FeedItem) -> ExtractedCommentLink | None:
        if isinstance(item, RssItem) and item.comments:
            return ExtractedCommentLink(
                url=item.comments.strip(), source="rss-comments-element"
            )
        return None
