"""订阅源元数据更新."""

import logging
from typing import Any, assert_never

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from feedloom.feed import AtomFeed, JsonFeed, ParsedFeed, RdfFeed, RssFeed
from feedloom.models.database import utc_now
from feedloom.models.source import IconType, Source
from feedloom.utils.html_parser import html_to_text

logger = logging.getLogger(__name__)


def feed_metadata(feed: ParsedFeed) -> dict[str, str | None]:
    """
    从 Feed 头部提取标题、描述、站点链接与图标.

    图标优先级：播客图片 > image.url > icon。
    """
    match feed:
        case RssFeed():
            description = feed.description
            site_url = feed.link
            icon_url = feed.itunes_image or (feed.image.url if feed.image else None)
        case RdfFeed():
            description = feed.description
            site_url = feed.link
            icon_url = feed.image.url if feed.image else None
        case AtomFeed():
            description = feed.subtitle
            site_url = next((link.href for link in feed.links if link.href), None)
            icon_url = feed.icon
        case JsonFeed():
            description = feed.description
            site_url = feed.home_page_url
            icon_url = feed.icon or feed.favicon
        case _:
            assert_never(feed)

    return {
        "title": (feed.title or "").strip() or None,
        "description": html_to_text(description) or None,
        "site_url": site_url or None,
        "icon_url": icon_url or None,
    }


async def mark_fetched(session: AsyncSession, source_id: int) -> None:
    """只更新 last_fetched，让订阅源排到下一轮队列之后."""
    await session.execute(
        update(Source).where(Source.id == source_id).values(last_fetched=utc_now())
    )
    await session.commit()


async def update_source_metadata(
    session: AsyncSession, source_id: int, feed: ParsedFeed
) -> bool:
    """
    用新解析的 Feed 刷新订阅源缓存的元数据.

    始终写入 last_fetched。图标只在 icon_type 为 auto 且 URL 变化时覆盖。

    Returns:
        除 last_fetched 外是否有字段发生变化
    """
    now = utc_now()
    metadata = feed_metadata(feed)

    result = await session.execute(
        select(
            Source.title,
            Source.description,
            Source.site_url,
            Source.icon_url,
            Source.icon_type,
        ).where(Source.id == source_id)
    )
    current = result.first()

    changes: dict[str, Any] = {}
    if current is not None:
        for field in ("title", "description", "site_url"):
            value = metadata[field]
            if value and value != getattr(current, field):
                changes[field] = value

        icon_url = metadata["icon_url"]
        icon_mode = current.icon_type or IconType.AUTO
        if icon_mode == IconType.AUTO and icon_url and icon_url != current.icon_url:
            changes["icon_url"] = icon_url
            changes["icon_updated_at"] = now

    values: dict[str, Any] = {"last_fetched": now}
    if changes:
        values.update(changes, updated_at=now)
        logger.info(f"订阅源 {source_id} 元数据更新: {', '.join(changes)}")

    await session.execute(update(Source).where(Source.id == source_id).values(**values))
    await session.commit()
    return bool(changes)
