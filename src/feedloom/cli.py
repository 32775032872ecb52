"""命令行入口.

    python -m feedloom.cli fetch-all [--batch-size N] [--staleness-minutes M]
    python -m feedloom.cli fetch-one SOURCE_ID
    python -m feedloom.cli prune [--days D]
"""

import argparse
import asyncio
import logging
import sys

from feedloom.config import get_settings
from feedloom.core.ingest import fetch_all_feeds, fetch_single_feed
from feedloom.core.maintenance import prune_articles
from feedloom.models.database import async_session_maker, close_db, init_db
from feedloom.models.source import Source

logger = logging.getLogger("feedloom.cli")


def build_parser() -> argparse.ArgumentParser:
    """构建参数解析器."""
    parser = argparse.ArgumentParser(prog="feedloom", description="Feed 采集工具")
    parser.add_argument("--database-url", help="覆盖配置中的数据库地址")
    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch_all = subparsers.add_parser("fetch-all", help="抓取一批陈旧的订阅源")
    fetch_all.add_argument("--batch-size", type=int, default=None)
    fetch_all.add_argument("--staleness-minutes", type=int, default=None)

    fetch_one = subparsers.add_parser("fetch-one", help="立即抓取单个订阅源")
    fetch_one.add_argument("source_id", type=int)

    prune = subparsers.add_parser("prune", help="删除过期文章")
    prune.add_argument("--days", type=int, default=None)

    return parser


async def run(args: argparse.Namespace) -> int:
    """执行子命令，返回退出码."""
    await init_db(args.database_url or get_settings().database_url)
    try:
        async with async_session_maker()() as session:
            if args.command == "fetch-all":
                result = await fetch_all_feeds(
                    session,
                    batch_size=args.batch_size,
                    staleness_threshold_minutes=args.staleness_minutes,
                )
                print(
                    f"成功 {result.success_count}, 失败 {result.error_count}, "
                    f"处理 {result.processed_count}"
                )
                for error in result.errors:
                    print(f"  [{error.source_id}] {error.url}: {error.error}")
                return 1 if result.error_count else 0

            if args.command == "fetch-one":
                source = await session.get(Source, args.source_id)
                if source is None:
                    print(f"订阅源 {args.source_id} 不存在", file=sys.stderr)
                    return 2
                single = await fetch_single_feed(session, args.source_id, source.url)
                print(
                    f"新增 {single.articles_added}, 跳过 {single.articles_skipped}, "
                    f"元数据更新: {single.source_updated}"
                )
                return 0

            deleted = await prune_articles(session, args.days)
            print(f"删除 {deleted} 篇文章")
            return 0
    finally:
        await close_db()


def main(argv: list[str] | None = None) -> int:
    """命令行主函数."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
