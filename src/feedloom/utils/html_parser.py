"""HTML 解析与清洗工具."""

import re
from functools import partial

import bleach
from bleach.linkifier import LinkifyFilter
from bs4 import BeautifulSoup

# 描述字段允许保留的安全标签
ALLOWED_HTML_TAGS = [
    "a",
    "p",
    "br",
    "strong",
    "b",
    "em",
    "i",
    "u",
    "code",
    "pre",
    "blockquote",
    "ul",
    "ol",
    "li",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
]
ALLOWED_HTML_ATTRIBUTES = {"a": ["href", "title", "target", "rel"]}
ALLOWED_PROTOCOLS = ["http", "https", "mailto"]


def _open_in_new_tab(attrs: dict, new: bool = False) -> dict:
    """所有链接在新标签页打开，并带上安全 rel."""
    attrs[(None, "target")] = "_blank"
    attrs[(None, "rel")] = "noopener noreferrer"
    return attrs


_cleaner = bleach.Cleaner(
    tags=ALLOWED_HTML_TAGS,
    attributes=ALLOWED_HTML_ATTRIBUTES,
    protocols=ALLOWED_PROTOCOLS,
    strip=True,
    filters=[partial(LinkifyFilter, callbacks=[_open_in_new_tab], parse_email=False)],
)


def html_to_text(html: str | None) -> str:
    """
    将 HTML 转换为纯文本.

    Args:
        html: HTML 内容

    Returns:
        去掉标签、解码实体并合并空白后的纯文本
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "lxml")

    # 移除 script 和 style 标签
    for element in soup(["script", "style"]):
        element.decompose()

    text = soup.get_text(separator=" ")

    # 清理多余空白
    return re.sub(r"\s+", " ", text).strip()


def sanitize_html(html: str | None) -> str:
    """
    清洗 HTML，只保留安全标签.

    链接会被强制加上 target="_blank" 与 rel="noopener noreferrer"。
    """
    if not html:
        return ""
    return _cleaner.clean(html)


def truncate_text(text: str | None, max_length: int, suffix: str = "...") -> str:
    """按字符数截断纯文本，尽量在单词边界处截断."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text

    truncated = text[: max_length - len(suffix)]

    # 断点离末尾不太远时才按单词截断
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.8:
        return truncated[:last_space] + suffix

    return truncated + suffix


def truncate_bytes(text: str | None, max_bytes: int, suffix: str = "...") -> str:
    """按 UTF-8 字节数截断纯文本，不会切断多字节字符."""
    if not text:
        return ""

    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text

    budget = max_bytes - len(suffix.encode("utf-8"))
    truncated = encoded[:budget].decode("utf-8", errors="ignore")
    return truncated + suffix


def _cut_html(html: str, limit: int) -> str:
    truncated = html[:limit]

    # 如果截断点落在标签内部，退回到标签开始之前
    last_tag_close = truncated.rfind(">")
    last_tag_open = truncated.rfind("<")
    if last_tag_open > last_tag_close:
        truncated = truncated[:last_tag_open]

    # 只在文本内容中按单词截断
    last_space = truncated.rfind(" ")
    if last_space > limit * 0.8 and last_space > last_tag_close:
        truncated = truncated[:last_space]
    return truncated


def truncate_html(
    html: str | None,
    max_length: int,
    suffix: str = "...",
    *,
    already_sanitized: bool = False,
) -> str:
    """
    截断 HTML 而不破坏标签结构.

    截断后重新清洗一次以闭合未闭合的标签。补上的闭合标签计入长度，
    超出 max_length 时缩短截断点重试，结果长度不超过 max_length。
    """
    if not html:
        return ""
    if not already_sanitized:
        html = sanitize_html(html)
    if len(html) <= max_length:
        return html

    limit = max_length - len(suffix)
    while limit > 0:
        result = sanitize_html(_cut_html(html, limit) + suffix)
        if len(result) <= max_length:
            return result
        limit -= len(result) - max_length
    return ""
