"""测试评论链接提取."""

from feedloom.comments import (
    AtomLinkExtractor,
    CommentLinkExtractor,
    CommentLinkRegistry,
    ExtractedCommentLink,
    HtmlPatternExtractor,
    RssElementExtractor,
    default_registry,
    extract_comment_link,
)
from feedloom.feed import AtomEntry, FeedItem, JsonItem, RdfItem, RssItem
from feedloom.feed.types import Link


class ExplodingExtractor(CommentLinkExtractor):
    priority = 0

    def can_handle(self, item: FeedItem) -> bool:
        return True

    def extract(self, item: FeedItem) -> ExtractedCommentLink | None:
        msg = "boom"
        raise RuntimeError(msg)


class TestRegistry:
    """测试注册表的优先级与容错."""

    def test_default_order(self) -> None:
        """默认按 RSS 元素、Atom 链接、HTML 模式的顺序执行."""
        priorities = [e.priority for e in default_registry.extractors]
        assert priorities == sorted(priorities)
        assert isinstance(default_registry.extractors[0], RssElementExtractor)
        assert isinstance(default_registry.extractors[-1], HtmlPatternExtractor)

    def test_rss_element_beats_html_pattern(self) -> None:
        """<comments> 元素优先于描述中的 [comments] 链接."""
        item = RssItem(
            comments=" https://news.example.com/item?id=1 ",
            description='<a href="https://reddit.com/c/1">[comments]</a>',
        )

        result = default_registry.extract(item)

        assert result is not None
        assert result.url == "https://news.example.com/item?id=1"
        assert result.source == "rss-comments-element"

    def test_failing_extractor_is_skipped(self) -> None:
        """某个提取器抛异常时继续尝试下一个."""
        registry = CommentLinkRegistry([RssElementExtractor(), ExplodingExtractor()])
        item = RssItem(comments="https://example.com/c")

        assert extract_comment_link(item, registry) == "https://example.com/c"

    def test_nothing_found(self) -> None:
        """没有任何评论链接时返回 None."""
        assert extract_comment_link(RssItem(description="<p>plain</p>")) is None


class TestAtomLink:
    """测试 Atom 讨论类链接."""

    def test_rel_matching_is_case_insensitive(self) -> None:
        """rel 不区分大小写."""
        entry = AtomEntry(
            links=[
                Link(rel="alternate", href="https://example.com/a"),
                Link(rel="Replies", href="https://example.com/a#comments"),
            ]
        )

        result = AtomLinkExtractor().extract(entry)

        assert result is not None
        assert result.url == "https://example.com/a#comments"
        assert result.source == "atom-link"

    def test_discussion_rel(self) -> None:
        """rel="discussion" 同样识别."""
        entry = AtomEntry(links=[Link(rel="discussion", href="https://forum/t/1")])
        assert extract_comment_link(entry) == "https://forum/t/1"

    def test_ignores_other_variants(self) -> None:
        """非 Atom 条目不处理."""
        assert not AtomLinkExtractor().can_handle(RssItem(link="https://x"))


class TestHtmlPattern:
    """测试 HTML 模式匹配."""

    def test_reddit_comments_anchor(self) -> None:
        """Reddit 风格的 [comments] 链接."""
        item = RssItem(
            description=(
                '<a href="https://example.com/post">[link]</a> '
                '<a href="https://reddit.com/r/x/comments/1">[comments]</a>'
            )
        )
        assert extract_comment_link(item) == "https://reddit.com/r/x/comments/1"

    def test_discussion_text(self) -> None:
        """链接文本为 Discussion."""
        item = JsonItem(content_html='<p>Post</p><a href="https://forum/d/2">Discussion</a>')
        assert extract_comment_link(item) == "https://forum/d/2"

    def test_comment_emoji(self) -> None:
        """链接文本带评论图标."""
        item = RdfItem(description='<a class="c" href="https://x/3">💬 12</a>')
        assert extract_comment_link(item) == "https://x/3"

    def test_atom_content_scanned(self) -> None:
        """Atom 的 content 也会被扫描."""
        entry = AtomEntry(content='<a href="https://x/4">Comments</a>')
        result = HtmlPatternExtractor().extract(entry)
        assert result is not None
        assert result.source == "html-pattern"
