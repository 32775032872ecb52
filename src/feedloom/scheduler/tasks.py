"""定时任务定义."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from feedloom.config import Settings

logger = logging.getLogger(__name__)

_scheduler: AsyncIOScheduler | None = None


async def fetch_task(settings: Settings) -> None:
    """采集任务：抓取一批陈旧的订阅源."""
    from feedloom.core.ingest import fetch_all_feeds, is_fetch_running
    from feedloom.models.database import async_session_maker

    if not settings.fetch_enabled:
        logger.info("Feed 采集已禁用，跳过")
        return

    # 检查是否已有任务在运行
    if is_fetch_running():
        logger.info("已有采集任务在运行，跳过本次调度")
        return

    logger.info("开始 Feed 采集任务...")

    try:
        async with async_session_maker()() as session:
            result = await fetch_all_feeds(
                session,
                batch_size=settings.fetch_batch_size,
                staleness_threshold_minutes=settings.staleness_threshold_minutes,
            )
    except Exception as e:
        logger.exception(f"Feed 采集任务失败: {e}")
        return

    logger.info(
        f"Feed 采集完成: 成功={result.success_count}, "
        f"失败={result.error_count}, 处理={result.processed_count}"
    )


async def prune_task(settings: Settings) -> None:
    """清理任务：删除过期文章."""
    from feedloom.core.maintenance import prune_articles
    from feedloom.models.database import async_session_maker

    logger.info("开始文章清理任务...")

    try:
        async with async_session_maker()() as session:
            await prune_articles(session, settings.prune_days)
    except Exception as e:
        logger.exception(f"文章清理任务失败: {e}")


def create_scheduler(settings: Settings) -> AsyncIOScheduler:
    """创建并启动定时任务调度器."""
    global _scheduler

    _scheduler = AsyncIOScheduler()

    _scheduler.add_job(
        fetch_task,
        "interval",
        minutes=settings.fetch_interval_minutes,
        args=[settings],
        id="fetch_task",
        name="Feed 采集",
        replace_existing=True,
        max_instances=1,
    )

    # 启动时立即执行一次采集
    _scheduler.add_job(
        fetch_task,
        "date",  # 一次性任务
        args=[settings],
        id="fetch_task_initial",
        name="初始采集",
    )

    _scheduler.add_job(
        prune_task,
        "cron",
        hour=3,
        args=[settings],
        id="prune_task",
        name="过期文章清理",
        replace_existing=True,
    )

    _scheduler.start()
    logger.info(
        f"定时任务调度器已启动，采集间隔: {settings.fetch_interval_minutes} 分钟"
    )

    return _scheduler


async def shutdown_scheduler() -> None:
    """关闭定时任务调度器."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        logger.info("定时任务调度器已关闭")
        _scheduler = None
