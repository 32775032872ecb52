"""四种 Feed 格式的显式标签联合类型.

解析器把原始 Feed 转换为以下变体之一，提取逻辑对变体做穷尽匹配，
而不是在字典上逐个探测字段。
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

FeedFormat = Literal["rss", "atom", "rdf", "json"]


class _FeedModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class Link(_FeedModel):
    """Atom <link>."""

    href: str | None = None
    rel: str | None = None
    type: str | None = None


class Person(_FeedModel):
    """作者."""

    name: str | None = None
    email: str | None = None
    url: str | None = None


class TextValue(_FeedModel):
    """带类型的文本节点（Atom content）."""

    value: str | None = None
    type: str | None = None


class RssGuid(_FeedModel):
    """RSS <guid>."""

    value: str | None = None
    is_permalink: bool | None = None


class Enclosure(_FeedModel):
    """附件（RSS enclosure / Atom rel=enclosure / JSON attachment）."""

    url: str | None = None
    type: str | None = None


class MediaContent(_FeedModel):
    """Media RSS 命名空间的 media:content / media:thumbnail."""

    url: str | None = None
    type: str | None = None
    medium: str | None = None


class FeedImage(_FeedModel):
    """RSS/RDF 频道级 <image>."""

    url: str | None = None
    title: str | None = None
    link: str | None = None


# ---------------------------------------------------------------------------
# 条目
# ---------------------------------------------------------------------------


class RssItem(_FeedModel):
    """RSS 2.0 <item>."""

    format: Literal["rss"] = "rss"
    title: str | None = None
    link: str | None = None
    guid: str | RssGuid | None = None
    description: str | None = None
    content_encoded: str | None = None
    comments: str | None = None
    author: str | Person | None = None
    authors: list[str | Person] = Field(default_factory=list)
    creator: str | None = None
    dc_creator: str | list[str] | None = None
    pub_date: str | None = None
    enclosures: list[Enclosure] = Field(default_factory=list)
    media_thumbnail: MediaContent | None = None
    media_content: list[MediaContent] = Field(default_factory=list)
    itunes_image: str | None = None


class AtomEntry(_FeedModel):
    """Atom <entry>."""

    format: Literal["atom"] = "atom"
    id: str | None = None
    title: str | None = None
    links: list[Link] = Field(default_factory=list)
    content: str | TextValue | None = None
    summary: str | None = None
    authors: list[Person] = Field(default_factory=list)
    published: str | None = None
    updated: str | None = None
    enclosures: list[Enclosure] = Field(default_factory=list)
    media_thumbnail: MediaContent | None = None
    media_content: list[MediaContent] = Field(default_factory=list)
    itunes_image: str | None = None

    @property
    def content_value(self) -> str | None:
        """content 的文本值."""
        if isinstance(self.content, TextValue):
            return self.content.value
        return self.content


class RdfItem(_FeedModel):
    """RSS 1.0 (RDF) <item>."""

    format: Literal["rdf"] = "rdf"
    title: str | None = None
    link: str | None = None
    description: str | None = None
    content_encoded: str | None = None
    dc_creator: str | list[str] | None = None
    dc_date: str | None = None


class JsonAttachment(_FeedModel):
    """JSON Feed attachment."""

    url: str | None = None
    mime_type: str | None = None


class JsonItem(_FeedModel):
    """JSON Feed item (1.0 / 1.1)."""

    format: Literal["json"] = "json"
    id: str | None = None
    url: str | None = None
    external_url: str | None = None
    title: str | None = None
    content_html: str | None = None
    content_text: str | None = None
    summary: str | None = None
    image: str | None = None
    banner_image: str | None = None
    date_published: str | None = None
    date_modified: str | None = None
    author: Person | None = None
    authors: list[Person] = Field(default_factory=list)
    attachments: list[JsonAttachment] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> object:
        # 部分 Feed 用数字作为 id
        if isinstance(value, int | float):
            return str(value)
        return value


FeedItem = RssItem | AtomEntry | RdfItem | JsonItem


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------


class RssFeed(_FeedModel):
    """RSS 2.0 <channel>."""

    format: Literal["rss"] = "rss"
    title: str | None = None
    link: str | None = None
    description: str | None = None
    image: FeedImage | None = None
    itunes_image: str | None = None
    items: list[RssItem] = Field(default_factory=list)


class AtomFeed(_FeedModel):
    """Atom <feed>."""

    format: Literal["atom"] = "atom"
    id: str | None = None
    title: str | None = None
    subtitle: str | None = None
    links: list[Link] = Field(default_factory=list)
    icon: str | None = None
    logo: str | None = None
    entries: list[AtomEntry] = Field(default_factory=list)


class RdfFeed(_FeedModel):
    """RSS 1.0 (RDF) <channel>."""

    format: Literal["rdf"] = "rdf"
    title: str | None = None
    link: str | None = None
    description: str | None = None
    image: FeedImage | None = None
    items: list[RdfItem] = Field(default_factory=list)


class JsonFeed(_FeedModel):
    """JSON Feed 顶层对象."""

    format: Literal["json"] = "json"
    version: str | None = None
    title: str | None = None
    home_page_url: str | None = None
    feed_url: str | None = None
    description: str | None = None
    icon: str | None = None
    favicon: str | None = None
    items: list[JsonItem] = Field(default_factory=list)


ParsedFeed = RssFeed | AtomFeed | RdfFeed | JsonFeed
