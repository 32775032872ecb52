"""文章字段提取.

把一个解析后的条目转换为标准化的文章记录。每个字段都有固定的回退链，
取第一个非空值。
"""

import logging
import re
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any, assert_never

import httpx
from dateutil import parser as date_parser

from feedloom.comments import CommentLinkRegistry, extract_comment_link
from feedloom.config import get_settings
from feedloom.core.tracing import Tracer, get_tracer
from feedloom.feed import (
    AtomEntry,
    FeedItem,
    JsonItem,
    ParsedFeed,
    RdfItem,
    RssFeed,
    RssItem,
)
from feedloom.feed.types import Enclosure, Person, RssGuid
from feedloom.fetcher.og_image import extract_og_image
from feedloom.models.database import utc_now
from feedloom.utils.html_parser import (
    html_to_text,
    sanitize_html,
    truncate_bytes,
    truncate_html,
)

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled"

# 聚合站点（Reddit、Hacker News）描述中的样板内容，评论链接会单独提取
_DESCRIPTION_CLEANUPS = [
    # 空链接（缩略图包裹层）
    re.compile(r"<a[^>]*>\s*</a>\s*", re.IGNORECASE),
    re.compile(r"submitted by\s*<a[^>]*>\s*/u/[^<]+\s*</a>\s*", re.IGNORECASE),
    re.compile(r"submitted by\s*/u/\S+\s*", re.IGNORECASE),
    re.compile(r"to\s*<a[^>]*>\s*r/[^<]+\s*</a>\s*", re.IGNORECASE),
    re.compile(r"<a[^>]*>\[link\]</a>\s*", re.IGNORECASE),
    re.compile(r"<a[^>]*>\[comments\]</a>\s*", re.IGNORECASE),
    re.compile(r"^<a[^>]*>Comments</a>$", re.IGNORECASE),
]
_MULTIPLE_BR = re.compile(r"(<br\s*/?\s*>\s*){2,}", re.IGNORECASE)
_TRAILING_BR = re.compile(r"<br\s*/?\s*>\s*$", re.IGNORECASE)
_LEADING_BR = re.compile(r"^\s*<br\s*/?\s*>", re.IGNORECASE)
_ANY_BR = re.compile(r"<br\s*/?\s*>", re.IGNORECASE)


@dataclass
class ArticleData:
    """待入库的文章记录."""

    source_id: int
    guid: str
    title: str
    link: str
    content: str
    description: str
    author: str | None = None
    image_url: str | None = None
    audio_url: str | None = None
    comment_link: str | None = None
    published_at: datetime | None = None

    def to_row(self) -> dict[str, Any]:
        """转换为 articles 表的插入行."""
        row = asdict(self)
        row["created_at"] = utc_now()
        return row


# ---------------------------------------------------------------------------
# GUID / 链接 / 日期
# ---------------------------------------------------------------------------


def extract_guid(item: FeedItem, source_id: int) -> str | None:
    """
    计算去重用的 GUID.

    RSS guid -> Atom/JSON id -> link -> 首个 links href -> 由标题和日期合成。
    返回 None 表示条目无法入库。
    """
    match item:
        case RssItem():
            guid = item.guid.value if isinstance(item.guid, RssGuid) else item.guid
            candidates = [guid, item.link]
        case AtomEntry():
            candidates = [item.id, _first_link_href(item)]
        case RdfItem():
            candidates = [item.link]
        case JsonItem():
            candidates = [item.id, item.url]
        case _:
            assert_never(item)

    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()

    if item.title:
        published = extract_published_date(item)
        if published:
            epoch_ms = int(published.timestamp() * 1000)
            return f"{source_id}-{item.title}-{epoch_ms}"
        return f"{source_id}-{item.title}"

    return None


def _first_link_href(item: AtomEntry) -> str | None:
    for link in item.links:
        if link.href:
            return link.href
    return None


def extract_link(item: FeedItem) -> str:
    """文章链接：RSS/RDF link -> JSON url -> Atom 首个链接."""
    match item:
        case RssItem() | RdfItem():
            return item.link or ""
        case JsonItem():
            return item.url or ""
        case AtomEntry():
            return _first_link_href(item) or ""
        case _:
            assert_never(item)


def _date_candidates(item: FeedItem) -> list[str | None]:
    # 依次对应 pubDate, published, updated, date_published, date_modified
    match item:
        case RssItem():
            return [item.pub_date]
        case AtomEntry():
            return [item.published, item.updated]
        case RdfItem():
            return [item.dc_date]
        case JsonItem():
            return [item.date_published, item.date_modified]
        case _:
            assert_never(item)


def parse_date(value: str | None) -> datetime | None:
    """
    解析日期字符串为带时区的 UTC 时间，失败返回 None.

    未带时区的日期按 UTC 处理。
    """
    if not value or not value.strip():
        return None
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError):
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def extract_published_date(item: FeedItem) -> datetime | None:
    """取第一个可解析的日期字段，全部无效时返回 None."""
    for value in _date_candidates(item):
        parsed = parse_date(value)
        if parsed is not None:
            return parsed
    return None


# ---------------------------------------------------------------------------
# 正文 / 描述
# ---------------------------------------------------------------------------


def _raw_content(item: FeedItem) -> str:
    match item:
        case JsonItem():
            return item.content_html or item.content_text or ""
        case AtomEntry():
            return item.content_value or ""
        case RssItem() | RdfItem():
            return item.content_encoded or ""
        case _:
            assert_never(item)


def extract_content(item: FeedItem) -> str:
    """正文纯文本，按字节数截断."""
    text = html_to_text(_raw_content(item))
    return truncate_bytes(text, get_settings().content_max_bytes)


def clean_description(html: str) -> str:
    """去掉聚合站点的样板链接并合并多余换行."""
    for pattern in _DESCRIPTION_CLEANUPS:
        html = pattern.sub("", html)

    html = _MULTIPLE_BR.sub("<br>", html)
    html = _TRAILING_BR.sub("", html)
    html = _LEADING_BR.sub("", html)
    html = html.strip()

    remaining = _ANY_BR.sub("", html).strip()
    if not remaining or remaining == "/>":
        return ""
    return html


def extract_description(item: FeedItem, processed_content: str) -> str:
    """
    摘要 HTML.

    优先使用条目自带的 description/summary，没有时复用已处理的正文。
    结果经过清洗、样板清理并按字符数安全截断。
    """
    match item:
        case RssItem() | RdfItem():
            raw = item.description
        case AtomEntry() | JsonItem():
            raw = item.summary
        case _:
            assert_never(item)

    cleaned = clean_description(sanitize_html(raw or processed_content))
    return truncate_html(
        cleaned, get_settings().description_max_chars, already_sanitized=True
    )


# ---------------------------------------------------------------------------
# 作者 / 图片 / 音频
# ---------------------------------------------------------------------------


def _person_name(value: str | Person | None) -> str | None:
    if isinstance(value, Person):
        return value.name
    return value


def extract_author(item: FeedItem) -> str | None:
    """作者：authors[0] -> author -> creator -> dc:creator."""
    match item:
        case RssItem():
            dc_creator = item.dc_creator
            if isinstance(dc_creator, list):
                dc_creator = dc_creator[0] if dc_creator else None
            candidates = [
                _person_name(item.authors[0]) if item.authors else None,
                _person_name(item.author),
                item.creator,
                dc_creator,
            ]
        case AtomEntry():
            candidates = [item.authors[0].name if item.authors else None]
        case RdfItem():
            dc_creator = item.dc_creator
            if isinstance(dc_creator, list):
                dc_creator = dc_creator[0] if dc_creator else None
            candidates = [dc_creator]
        case JsonItem():
            candidates = [
                item.authors[0].name if item.authors else None,
                _person_name(item.author),
            ]
        case _:
            assert_never(item)

    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return None


def _enclosures(item: FeedItem) -> list[Enclosure]:
    match item:
        case RssItem() | AtomEntry():
            return list(item.enclosures)
        case JsonItem():
            return [Enclosure(url=a.url, type=a.mime_type) for a in item.attachments]
        case RdfItem():
            return []
        case _:
            assert_never(item)


def _enclosure_with_type(item: FeedItem, prefix: str) -> str | None:
    for enclosure in _enclosures(item):
        if enclosure.url and (enclosure.type or "").startswith(prefix):
            return enclosure.url
    return None


def extract_static_image(item: FeedItem, feed: ParsedFeed | None = None) -> str | None:
    """
    不需要网络请求的配图来源.

    播客图片（条目级，其次 Feed 级）-> JSON image -> image/* 附件 ->
    media:thumbnail -> image/* 的 media:content。
    """
    if isinstance(item, RssItem | AtomEntry) and item.itunes_image:
        return item.itunes_image
    if isinstance(feed, RssFeed) and feed.itunes_image:
        return feed.itunes_image

    if isinstance(item, JsonItem) and item.image:
        return item.image

    enclosure_image = _enclosure_with_type(item, "image/")
    if enclosure_image:
        return enclosure_image

    if isinstance(item, RssItem | AtomEntry):
        if item.media_thumbnail and item.media_thumbnail.url:
            return item.media_thumbnail.url
        for media in item.media_content:
            if media.url and (media.type or "").startswith("image/"):
                return media.url

    return None


async def extract_image(
    item: FeedItem,
    link: str,
    *,
    feed: ParsedFeed | None = None,
    skip_og_image: bool = False,
    tracer: Tracer | None = None,
    client: httpx.AsyncClient | None = None,
) -> str | None:
    """配图 URL，最后才尝试抓取文章页的 OpenGraph 图片."""
    image = extract_static_image(item, feed)
    if image or not link or skip_og_image:
        return image

    tracer = tracer or get_tracer()
    with tracer.start_span(
        "http.client", "Fetch OpenGraph Image", {"http.url": link}
    ) as span:
        try:
            image = await extract_og_image(link, client=client)
        except Exception as e:
            span.set_attribute("og.error", str(e))
            span.set_status(False, "fetch failed")
            tracer.emit_counter(
                "og_image.fetch_error", 1, {"error_type": type(e).__name__}
            )
            logger.warning(f"获取 OpenGraph 配图失败 {link}: {e}")
            return None

        span.set_attribute("og.found", image is not None)
        span.set_status(True, "ok" if image else "no image found")
    return image


def extract_audio(item: FeedItem) -> str | None:
    """第一个 audio/* 附件."""
    return _enclosure_with_type(item, "audio/")


# ---------------------------------------------------------------------------
# 汇总
# ---------------------------------------------------------------------------


async def extract_article_data(
    item: FeedItem,
    source_id: int,
    guid: str,
    *,
    feed: ParsedFeed | None = None,
    skip_og_image: bool = False,
    tracer: Tracer | None = None,
    client: httpx.AsyncClient | None = None,
    registry: CommentLinkRegistry | None = None,
) -> ArticleData:
    """提取单个条目的全部字段."""
    link = extract_link(item)
    content = extract_content(item)

    return ArticleData(
        source_id=source_id,
        guid=guid,
        title=(item.title or "").strip() or DEFAULT_TITLE,
        link=link,
        content=content,
        description=extract_description(item, content),
        author=extract_author(item),
        image_url=await extract_image(
            item,
            link,
            feed=feed,
            skip_og_image=skip_og_image,
            tracer=tracer,
            client=client,
        ),
        audio_url=extract_audio(item),
        comment_link=extract_comment_link(item, registry),
        published_at=extract_published_date(item),
    )
