"""评论链接提取."""

from feedloom.comments.atom_link import AtomLinkExtractor
from feedloom.comments.base import CommentLinkExtractor, ExtractedCommentLink
from feedloom.comments.html_pattern import HtmlPatternExtractor
from feedloom.comments.registry import (
    CommentLinkRegistry,
    default_registry,
    extract_comment_link,
)
from feedloom.comments.rss_element import RssElementExtractor

__all__ = [
    "AtomLinkExtractor",
    "CommentLinkExtractor",
    "CommentLinkRegistry",
    "ExtractedCommentLink",
    "HtmlPatternExtractor",
    "RssElementExtractor",
    "default_registry",
    "extract_comment_link",
]
