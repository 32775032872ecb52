"""OpenGraph 配图抓取."""

import logging

import httpx
from trafilatura import extract_metadata

from feedloom.config import get_settings

logger = logging.getLogger(__name__)


async def extract_og_image(
    url: str, client: httpx.AsyncClient | None = None
) -> str | None:
    """
    读取文章页面头部，返回 og:image.

    只下载前 og_image_max_bytes 字节，失败时返回 None，不抛异常。
    """
    settings = get_settings()
    owns_client = client is None
    http = client or httpx.AsyncClient(
        timeout=settings.og_image_timeout_seconds, follow_redirects=True
    )

    try:
        head = await _read_head(
            http, url, settings.og_image_max_bytes, settings.feed_user_agent
        )
    except httpx.HTTPError as e:
        logger.debug(f"获取 OpenGraph 配图失败 {url}: {e}")
        return None
    finally:
        if owns_client:
            await http.aclose()

    if not head:
        return None

    metadata = extract_metadata(head, default_url=url)
    image = metadata.image if metadata else None
    if image and image.startswith(("http://", "https://")):
        return image
    return None


async def _read_head(
    http: httpx.AsyncClient, url: str, max_bytes: int, user_agent: str
) -> str | None:
    headers = {"User-Agent": user_agent, "Accept": "text/html,application/xhtml+xml"}
    async with http.stream("GET", url, headers=headers) as response:
        if not response.is_success:
            return None
        if "html" not in response.headers.get("content-type", "").lower():
            return None

        buffer = bytearray()
        async for chunk in response.aiter_bytes():
            buffer.extend(chunk)
            if len(buffer) >= max_bytes:
                break

    encoding = response.encoding or "utf-8"
    return bytes(buffer[:max_bytes]).decode(encoding, errors="ignore")
