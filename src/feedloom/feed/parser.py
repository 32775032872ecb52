"""Feed 解析适配层.

RSS / Atom / RDF 交给 feedparser 解析，JSON Feed 用 pydantic 校验，
最终统一转换为 `feedloom.feed.types` 中的标签变体。
"""

import json
import logging
from typing import Any, assert_never

import feedparser
from lxml import etree
from pydantic import ValidationError

from feedloom.feed.types import (
    AtomEntry,
    AtomFeed,
    Enclosure,
    FeedImage,
    FeedItem,
    JsonFeed,
    Link,
    MediaContent,
    ParsedFeed,
    Person,
    RdfFeed,
    RdfItem,
    RssFeed,
    RssItem,
    TextValue,
)

logger = logging.getLogger(__name__)

# feedparser 版本标识中属于 RDF 的部分
_RDF_VERSIONS = {"rss090", "rss10"}

_ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"


class FeedParseError(Exception):
    """Feed 内容无法解析."""


def parse_feed(content: str) -> ParsedFeed:
    """
    解析 Feed 文本，自动识别格式.

    Raises:
        FeedParseError: 内容不是可识别的 RSS/Atom/RDF/JSON Feed
    """
    stripped = content.lstrip()
    if not stripped:
        msg = "Feed 内容为空"
        raise FeedParseError(msg)

    if stripped.startswith("{"):
        return _parse_json_feed(stripped)

    document = stripped.encode("utf-8")
    # 文本已经解码为 str，强制声明 utf-8 避免按 XML 声明再次解码
    parsed = feedparser.parse(
        document,
        response_headers={"content-type": "application/xml; charset=utf-8"},
    )
    version = parsed.get("version", "")

    if not version:
        reason = parsed.get("bozo_exception") or "无法识别的 Feed 格式"
        msg = f"Feed 解析失败: {reason}"
        raise FeedParseError(msg)

    logger.debug(f"feedparser 识别格式: {version}")

    if version.startswith("atom"):
        return _to_atom_feed(parsed)
    if version in _RDF_VERSIONS:
        return _to_rdf_feed(parsed)
    return _to_rss_feed(parsed, document)


def extract_feed_items(feed: ParsedFeed) -> list[FeedItem]:
    """取出 Feed 中的条目（RSS/RDF/JSON 为 items，Atom 为 entries）."""
    match feed:
        case RssFeed() | RdfFeed() | JsonFeed():
            return list(feed.items)
        case AtomFeed():
            return list(feed.entries)
        case _:
            assert_never(feed)


# ---------------------------------------------------------------------------
# JSON Feed
# ---------------------------------------------------------------------------


def _parse_json_feed(content: str) -> JsonFeed:
    """解析 JSON Feed."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        msg = f"JSON Feed 解析失败: {e}"
        raise FeedParseError(msg) from e

    if not isinstance(data, dict) or "jsonfeed.org" not in str(data.get("version", "")):
        msg = "JSON 文档不是 JSON Feed"
        raise FeedParseError(msg)

    try:
        return JsonFeed.model_validate(data)
    except ValidationError as e:
        msg = f"JSON Feed 结构无效: {e.error_count()} 个字段错误"
        raise FeedParseError(msg) from e


# ---------------------------------------------------------------------------
# feedparser -> 变体
# ---------------------------------------------------------------------------


def _first_content(entry: Any) -> dict[str, Any] | None:
    contents = entry.get("content") or []
    return contents[0] if contents else None


def _persons(raw: Any) -> list[Person]:
    persons: list[Person] = []
    for author in raw or []:
        if isinstance(author, dict) and (author.get("name") or author.get("email")):
            persons.append(
                Person(
                    name=author.get("name"),
                    email=author.get("email"),
                    url=author.get("href"),
                )
            )
    return persons


def _links(raw: Any) -> list[Link]:
    return [
        Link(href=link.get("href"), rel=link.get("rel"), type=link.get("type"))
        for link in raw or []
        if isinstance(link, dict)
    ]


def _enclosures(entry: Any) -> list[Enclosure]:
    return [
        Enclosure(url=enc.get("href") or enc.get("url"), type=enc.get("type"))
        for enc in entry.get("enclosures") or []
        if isinstance(enc, dict)
    ]


def _media_thumbnail(entry: Any) -> MediaContent | None:
    thumbnails = entry.get("media_thumbnail") or []
    if thumbnails and isinstance(thumbnails[0], dict) and thumbnails[0].get("url"):
        return MediaContent(url=thumbnails[0]["url"])
    return None


def _media_content(entry: Any) -> list[MediaContent]:
    return [
        MediaContent(url=m.get("url"), type=m.get("type"), medium=m.get("medium"))
        for m in entry.get("media_content") or []
        if isinstance(m, dict)
    ]


def _image_href(container: Any) -> str | None:
    image = container.get("image")
    if isinstance(image, dict):
        return image.get("href") or image.get("url")
    return None


def _channel_image(feed: Any) -> tuple[FeedImage | None, str | None]:
    """
    区分频道 <image> 与 <itunes:image>.

    feedparser 把两者都放进 feed.image；RSS <image> 必须带 title/link 子元素，
    itunes:image 只有 href。
    """
    image = feed.get("image")
    if not isinstance(image, dict):
        return None, None

    href = image.get("href") or image.get("url")
    if image.get("title") or image.get("link"):
        return FeedImage(url=href, title=image.get("title"), link=image.get("link")), None
    return None, href


def _child_text(node: Any, tag: str) -> str | None:
    value = node.findtext(tag)
    return value.strip() or None if value else None


def _rss_channel_images(
    document: bytes,
) -> tuple[FeedImage | None, str | None] | None:
    """
    直接从 XML 读取频道 <image> 与 <itunes:image>.

    feedparser 合并后的 feed.image 随标签顺序丢失其中一个，这里分别读取。
    文档无法读取或没有 <channel> 时返回 None.
    """
    parser = etree.XMLParser(recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(document, parser)
    except etree.XMLSyntaxError:
        return None
    channel = root.find("channel") if root is not None else None
    if channel is None:
        return None

    itunes = channel.find(f"{{{_ITUNES_NS}}}image")
    href = itunes.get("href") if itunes is not None else None
    itunes_image = href.strip() or None if href else None

    image = None
    node = channel.find("image")
    if node is not None:
        url = _child_text(node, "url")
        title = _child_text(node, "title")
        link = _child_text(node, "link")
        if url or title or link:
            image = FeedImage(url=url, title=title, link=link)
    return image, itunes_image


def _to_rss_item(entry: Any) -> RssItem:
    content = _first_content(entry)
    return RssItem(
        title=entry.get("title"),
        link=entry.get("link"),
        guid=entry.get("id"),
        description=entry.get("summary"),
        content_encoded=content.get("value") if content else None,
        comments=entry.get("comments"),
        author=entry.get("author"),
        authors=_persons(entry.get("authors")),
        pub_date=entry.get("published"),
        enclosures=_enclosures(entry),
        media_thumbnail=_media_thumbnail(entry),
        media_content=_media_content(entry),
        itunes_image=_image_href(entry),
    )


def _to_atom_entry(entry: Any) -> AtomEntry:
    content = _first_content(entry)
    links = _links(entry.get("links"))
    return AtomEntry(
        id=entry.get("id"),
        title=entry.get("title"),
        links=[link for link in links if link.rel != "enclosure"],
        enclosures=_enclosures(entry),
        content=(
            TextValue(value=content.get("value"), type=content.get("type"))
            if content
            else None
        ),
        summary=entry.get("summary"),
        authors=_persons(entry.get("authors")),
        published=entry.get("published"),
        updated=entry.get("updated"),
        media_thumbnail=_media_thumbnail(entry),
        media_content=_media_content(entry),
        itunes_image=_image_href(entry),
    )


def _to_rdf_item(entry: Any) -> RdfItem:
    content = _first_content(entry)
    return RdfItem(
        title=entry.get("title"),
        link=entry.get("link"),
        description=entry.get("summary"),
        content_encoded=content.get("value") if content else None,
        dc_creator=entry.get("author"),
        dc_date=entry.get("updated") or entry.get("published"),
    )


def _to_rss_feed(parsed: Any, document: bytes) -> RssFeed:
    channel = parsed.feed
    images = _rss_channel_images(document)
    image, itunes_image = images if images is not None else _channel_image(channel)
    return RssFeed(
        title=channel.get("title"),
        link=channel.get("link"),
        description=channel.get("subtitle"),
        image=image,
        itunes_image=itunes_image,
        items=[_to_rss_item(entry) for entry in parsed.entries],
    )


def _to_atom_feed(parsed: Any) -> AtomFeed:
    channel = parsed.feed
    return AtomFeed(
        id=channel.get("id"),
        title=channel.get("title"),
        subtitle=channel.get("subtitle"),
        links=_links(channel.get("links")),
        icon=channel.get("icon"),
        logo=channel.get("logo"),
        entries=[_to_atom_entry(entry) for entry in parsed.entries],
    )


def _to_rdf_feed(parsed: Any) -> RdfFeed:
    channel = parsed.feed
    image, _ = _channel_image(channel)
    return RdfFeed(
        title=channel.get("title"),
        link=channel.get("link"),
        description=channel.get("subtitle"),
        image=image,
        items=[_to_rdf_item(entry) for entry in parsed.entries],
    )
