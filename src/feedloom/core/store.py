"""文章去重与批量入库.

1. 为每个条目计算 GUID，无法计算的计为跳过；
2. 按数据库参数上限分块查询已存在的 GUID；
3. 对新 GUID 提取文章字段，提取失败计为跳过；
4. 分块批量插入，批量写入失败时回滚并逐行重试，仍失败的行计为跳过。
"""

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx
from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from feedloom.comments import CommentLinkRegistry
from feedloom.config import get_settings
from feedloom.core.extractor import extract_article_data, extract_guid
from feedloom.core.tracing import Tracer, get_tracer
from feedloom.feed import FeedItem, ParsedFeed
from feedloom.models.article import Article

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class StoreResult:
    """入库结果."""

    added: int = 0
    skipped: int = 0


def chunked(values: Sequence[T], size: int) -> Iterator[list[T]]:
    """按固定大小切分序列."""
    if size < 1:
        msg = f"分块大小必须为正数: {size}"
        raise ValueError(msg)
    for start in range(0, len(values), size):
        yield list(values[start : start + size])


def supports_batch(session: AsyncSession) -> bool:
    """当前数据库方言是否支持多行插入."""
    return bool(session.get_bind().dialect.supports_multivalues_insert)


class ArticleStore:
    """按订阅源写入新文章."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        dedup_chunk_size: int | None = None,
        insert_chunk_size: int | None = None,
        batch_insert: bool | None = None,
        skip_og_image: bool = True,
        tracer: Tracer | None = None,
        client: httpx.AsyncClient | None = None,
        registry: CommentLinkRegistry | None = None,
    ) -> None:
        settings = get_settings()
        self.session = session
        # IN 查询之外还要给其他条件留一个参数位
        self.dedup_chunk_size = dedup_chunk_size or max(
            settings.max_query_parameters - 1, 1
        )
        self.insert_chunk_size = insert_chunk_size or settings.insert_chunk_size
        self.batch_insert = batch_insert
        self.skip_og_image = skip_og_image
        self.tracer = tracer or get_tracer()
        self.client = client
        self.registry = registry

    async def existing_guids(self, guids: Sequence[str]) -> set[str]:
        """分块查询已入库的 GUID."""
        existing: set[str] = set()
        for chunk in chunked(list(dict.fromkeys(guids)), self.dedup_chunk_size):
            result = await self.session.execute(
                select(Article.guid).where(Article.guid.in_(chunk))
            )
            existing.update(result.scalars().all())
        return existing

    async def store_articles(
        self,
        source_id: int,
        items: Sequence[FeedItem],
        feed: ParsedFeed | None = None,
    ) -> StoreResult:
        """去重并写入一个订阅源的条目."""
        result = StoreResult()

        with self.tracer.start_span(
            "feed.store_articles", "Store Articles", {"source_id": source_id}
        ) as span:
            span.set_attribute("items_found", len(items))
            if not items:
                logger.warning(f"订阅源 {source_id} 的 Feed 中没有条目")
                span.set_status(True, "No items")
                return result

            candidates: list[tuple[str, FeedItem]] = []
            for item in items:
                guid = extract_guid(item, source_id)
                if guid is None:
                    result.skipped += 1
                    continue
                candidates.append((guid, item))

            existing = await self.existing_guids([guid for guid, _ in candidates])
            result.skipped += sum(1 for guid, _ in candidates if guid in existing)

            rows: list[dict[str, Any]] = []
            for guid, item in candidates:
                if guid in existing:
                    continue
                try:
                    article = await extract_article_data(
                        item,
                        source_id,
                        guid,
                        feed=feed,
                        skip_og_image=self.skip_og_image,
                        tracer=self.tracer,
                        client=self.client,
                        registry=self.registry,
                    )
                except Exception as e:
                    result.skipped += 1
                    logger.warning(f"订阅源 {source_id} 条目 {guid} 提取失败: {e}")
                    self.tracer.capture_exception(
                        e,
                        level="warning",
                        tags={
                            "operation": "extract_article_data",
                            "source_id": str(source_id),
                        },
                        extra={"guid": guid},
                    )
                    continue
                rows.append(article.to_row())

            batch = self.batch_insert
            if batch is None:
                batch = supports_batch(self.session)

            for chunk in chunked(rows, self.insert_chunk_size):
                added, skipped = await self._insert_chunk(chunk, batch)
                result.added += added
                result.skipped += skipped

            self.tracer.add_breadcrumb(
                "feed.store",
                f"Processed {len(items)} items from feed",
                {
                    "source_id": source_id,
                    "articles_added": result.added,
                    "articles_skipped": result.skipped,
                    "sample_guids": [guid for guid, _ in candidates[:5]],
                },
            )
            span.set_attribute("articles_added", result.added)
            span.set_attribute("articles_skipped", result.skipped)
            span.set_status(True, "ok")

        return result

    async def _insert_chunk(
        self, rows: list[dict[str, Any]], batch: bool
    ) -> tuple[int, int]:
        """写入一块，返回 (新增, 跳过)."""
        if batch:
            try:
                await self.session.execute(insert(Article), rows)
                await self.session.commit()
                return len(rows), 0
            except SQLAlchemyError as e:
                await self.session.rollback()
                logger.warning(f"批量插入 {len(rows)} 篇文章失败，改为逐条插入: {e}")
                self.tracer.capture_exception(
                    e,
                    level="warning",
                    tags={"operation": "batch_insert_articles"},
                    extra={"chunk_size": len(rows)},
                )

        added = skipped = 0
        for row in rows:
            try:
                await self.session.execute(insert(Article).values(**row))
                await self.session.commit()
                added += 1
            except IntegrityError:
                # 并发运行时可能已被另一次调用写入
                await self.session.rollback()
                skipped += 1
                logger.debug(f"文章已存在，跳过: {row['guid']}")
            except SQLAlchemyError as e:
                await self.session.rollback()
                skipped += 1
                logger.warning(f"插入文章 {row['guid']} 失败: {e}")
        return added, skipped
