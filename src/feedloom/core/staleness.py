"""按陈旧度挑选待抓取的订阅源."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import ColumnElement, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from feedloom.models.database import utc_now
from feedloom.models.source import Source


def stale_threshold(minutes: int, now: datetime | None = None) -> datetime:
    """last_fetched 早于该时间即视为陈旧."""
    return (now or utc_now()) - timedelta(minutes=minutes)


def _is_stale(threshold: datetime) -> ColumnElement[bool]:
    return or_(Source.last_fetched.is_(None), Source.last_fetched < threshold)


async def get_stale_sources(
    session: AsyncSession, threshold: datetime, limit: int
) -> list[tuple[int, str]]:
    """
    返回最多 limit 个陈旧订阅源的 (id, url).

    按 last_fetched 升序（从未抓取的排最前），保证反复调用最终覆盖全部订阅源。
    """
    stmt = (
        select(Source.id, Source.url)
        .where(_is_stale(threshold))
        .order_by(Source.last_fetched.asc().nulls_first(), Source.id)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return [(row.id, row.url) for row in result.all()]


async def count_sources(session: AsyncSession) -> int:
    """订阅源总数."""
    result = await session.execute(select(func.count()).select_from(Source))
    return result.scalar_one()


async def count_stale_sources(session: AsyncSession, threshold: datetime) -> int:
    """陈旧订阅源数量."""
    stmt = select(func.count()).select_from(Source).where(_is_stale(threshold))
    result = await session.execute(stmt)
    return result.scalar_one()


@dataclass
class StaleBatch:
    """一次批处理选中的订阅源及统计."""

    sources: list[tuple[int, str]]
    total_sources: int
    stale_sources: int


async def select_stale_batch(
    session: AsyncSession, threshold_minutes: int, batch_size: int
) -> StaleBatch:
    """挑选本次批处理要抓取的订阅源."""
    threshold = stale_threshold(threshold_minutes)
    return StaleBatch(
        sources=await get_stale_sources(session, threshold, batch_size),
        total_sources=await count_sources(session),
        stale_sources=await count_stale_sources(session, threshold),
    )
