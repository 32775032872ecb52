"""文章清理任务."""

import logging
from datetime import timedelta

from sqlalchemy import and_, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from feedloom.config import get_settings
from feedloom.core.store import chunked
from feedloom.core.tracing import Tracer, get_tracer
from feedloom.models.article import Article
from feedloom.models.database import utc_now

logger = logging.getLogger(__name__)


async def prune_articles(
    session: AsyncSession,
    days: int | None = None,
    *,
    tracer: Tracer | None = None,
) -> int:
    """
    删除超过保留天数的文章.

    以 published_at 判断，缺失时退回 created_at。删除按参数上限分块执行。

    Returns:
        删除的文章数量
    """
    settings = get_settings()
    tracer = tracer or get_tracer()
    days = days if days is not None else settings.prune_days
    cutoff = utc_now() - timedelta(days=days)

    expired = or_(
        Article.published_at < cutoff,
        and_(Article.published_at.is_(None), Article.created_at < cutoff),
    )
    result = await session.execute(select(Article.id).where(expired))
    ids = list(result.scalars().all())

    if not ids:
        logger.info("没有需要清理的文章")
        tracer.emit_counter("cron.articles_pruned", 0)
        return 0

    for chunk in chunked(ids, max(settings.max_query_parameters - 1, 1)):
        await session.execute(delete(Article).where(Article.id.in_(chunk)))
    await session.commit()

    logger.info(f"清理了 {len(ids)} 篇超过 {days} 天的文章")
    tracer.emit_counter("cron.articles_pruned", len(ids), {"prune_days": str(days)})
    return len(ids)
