"""测试陈旧订阅源挑选."""

from datetime import UTC, datetime, timedelta

from feedloom.core.staleness import (
    count_sources,
    count_stale_sources,
    get_stale_sources,
    select_stale_batch,
    stale_threshold,
)


class TestStaleness:
    """测试按 last_fetched 排序的挑选逻辑."""

    async def test_never_fetched_first_then_oldest(
        self, async_session, make_source
    ) -> None:
        """从未抓取的排最前，其次是最久未抓取的."""
        now = datetime.now(UTC)
        t1 = await make_source(
            url="https://a.example.com/feed", last_fetched=now - timedelta(hours=3)
        )
        await make_source(
            url="https://b.example.com/feed", last_fetched=now - timedelta(hours=2)
        )
        never = await make_source(url="https://c.example.com/feed")

        sources = await get_stale_sources(async_session, stale_threshold(30), 2)

        assert [source_id for source_id, _ in sources] == [never, t1]

    async def test_fresh_sources_excluded(self, async_session, make_source) -> None:
        """刚抓取过的订阅源不会被选中."""
        now = datetime.now(UTC)
        await make_source(url="https://fresh.example.com/feed", last_fetched=now)
        stale = await make_source(
            url="https://stale.example.com/feed", last_fetched=now - timedelta(hours=1)
        )

        threshold = stale_threshold(30)
        sources = await get_stale_sources(async_session, threshold, 10)

        assert sources == [(stale, "https://stale.example.com/feed")]
        assert await count_sources(async_session) == 2
        assert await count_stale_sources(async_session, threshold) == 1

    async def test_select_stale_batch(self, async_session, make_source) -> None:
        """批次统计包含总数与陈旧数."""
        for i in range(3):
            await make_source(url=f"https://{i}.example.com/feed")

        batch = await select_stale_batch(async_session, 30, 2)

        assert len(batch.sources) == 2
        assert batch.total_sources == 3
        assert batch.stale_sources == 3

    def test_threshold(self) -> None:
        """阈值为 now 减去分钟数."""
        now = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        assert stale_threshold(30, now) == datetime(2024, 1, 1, 11, 30, tzinfo=UTC)

    def test_default_threshold_is_utc_aware(self) -> None:
        """默认阈值带 UTC 时区."""
        threshold = stale_threshold(30)
        assert threshold.tzinfo is UTC
        assert datetime.now(UTC) - threshold >= timedelta(minutes=30)
