"""Feed HTTP 客户端."""

import logging

import httpx

from feedloom.config import get_settings
from feedloom.feed import ParsedFeed, parse_feed

logger = logging.getLogger(__name__)

FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/xml, text/xml, */*"

# 认为是 Feed 的 Content-Type 关键字
_FEED_CONTENT_TYPES = ("xml", "rss", "atom", "json")


class FeedFetchError(Exception):
    """Feed 下载失败."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FeedFetcher:
    """下载 Feed 文本."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
    ) -> None:
        settings = get_settings()
        self.user_agent = user_agent or settings.feed_user_agent
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout or settings.fetch_timeout_seconds,
            follow_redirects=True,
        )

    async def close(self) -> None:
        """关闭客户端."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "FeedFetcher":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def fetch_text(self, url: str) -> str:
        """
        GET 指定 URL 并返回正文文本.

        Raises:
            FeedFetchError: 网络错误或非 2xx 响应
        """
        headers = {"User-Agent": self.user_agent, "Accept": FEED_ACCEPT}
        try:
            response = await self._client.get(url, headers=headers)
        except httpx.HTTPError as e:
            msg = f"请求失败: {e}"
            raise FeedFetchError(msg) from e

        if not response.is_success:
            msg = f"HTTP {response.status_code}: {response.reason_phrase}"
            raise FeedFetchError(msg, status_code=response.status_code)

        content_type = response.headers.get("content-type", "").lower()
        if not any(kind in content_type for kind in _FEED_CONTENT_TYPES):
            logger.warning(f"非预期的 Content-Type {content_type!r}: {url}")

        return response.text

    async def fetch_feed(self, url: str) -> ParsedFeed:
        """下载并解析 Feed."""
        return parse_feed(await self.fetch_text(url))


async def fetch_and_parse_feed(
    url: str, client: httpx.AsyncClient | None = None
) -> ParsedFeed:
    """
    下载并解析 Feed，不落库.

    用于订阅前预览。
    """
    async with FeedFetcher(client=client) as fetcher:
        return await fetcher.fetch_feed(url)
