"""评论链接提取器接口."""

from abc import ABC, abstractmethod
from typing import Literal

from pydantic import BaseModel

from feedloom.feed import FeedItem

CommentLinkSource = Literal["rss-comments-element", "atom-link", "html-pattern"]


class ExtractedCommentLink(BaseModel):
    """提取到的讨论页链接."""

    url: str
    source: CommentLinkSource


class CommentLinkExtractor(ABC):
    """
    评论链接提取策略.

    priority 越小越先执行；can_handle 为 False 时不会调用 extract。
    """

    priority: int

    @abstractmethod
    def can_handle(self, item: FeedItem) -> bool:
        """条目是否包含本策略关心的字段."""
        ...

    @abstractmethod
    def extract(self, item: FeedItem) -> ExtractedCommentLink | None:
        """提取评论链接，找不到时返回 None."""
        ...
