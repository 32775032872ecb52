"""域名黑名单检查.

在发起 HTTP 请求之前判断订阅源是否应该跳过。有无限制套餐订阅者的源不受黑名单影响；
支撑表缺失（例如迁移尚未完成）时放行，而不是拒绝抓取。
"""

import logging
from urllib.parse import urlsplit

import tldextract
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from feedloom.config import get_settings
from feedloom.models.blocked_domain import BlockedDomain
from feedloom.models.user import Subscription, User

logger = logging.getLogger(__name__)

# 只使用内置的公共后缀列表，不联网
_tld_extract = tldextract.TLDExtract(cache_dir=None, suffix_list_urls=())

WILDCARD_PREFIX = "*."


def normalize_domain(value: str) -> str:
    """
    规范化黑名单条目.

    去掉协议、路径、端口和末尾的点，统一小写；保留通配前缀 "*."。
    """
    domain = value.strip().lower()
    if "://" in domain:
        domain = urlsplit(domain).hostname or ""
    domain = domain.split("/", 1)[0].split(":", 1)[0]
    return domain.rstrip(".")


def is_subdomain_of(domain: str, base_domain: str) -> bool:
    """domain 等于 base_domain 或是它的子域名."""
    domain = domain.strip().lower()
    base_domain = base_domain.strip().lower()
    return domain == base_domain or domain.endswith(f".{base_domain}")


def extract_domain(url: str) -> str | None:
    """取 URL 的主机名，无法解析时返回 None."""
    try:
        hostname = urlsplit(url.strip()).hostname
    except ValueError:
        return None
    return hostname.rstrip(".") if hostname else None


def registrable_domain(hostname: str) -> str | None:
    """可注册域名（example.co.uk），IP 或未知后缀返回 None."""
    parts = _tld_extract(hostname)
    if parts.domain and parts.suffix:
        return f"{parts.domain}.{parts.suffix}"
    return None


def is_domain_blocked(hostname: str, blocked_domains: list[str]) -> bool:
    """
    检查主机名是否命中黑名单.

    普通条目匹配主机名本身或其可注册域名；"*.example.com" 匹配
    example.com 及其所有子域名。
    """
    hostname = hostname.lower()
    registrable = registrable_domain(hostname)

    for entry in blocked_domains:
        pattern = normalize_domain(entry)
        if not pattern:
            continue
        if pattern.startswith(WILDCARD_PREFIX):
            if is_subdomain_of(hostname, pattern[len(WILDCARD_PREFIX) :]):
                return True
        elif pattern in (hostname, registrable):
            return True
    return False


async def get_blocked_domains(session: AsyncSession) -> list[str]:
    """读取黑名单，表不存在时返回空列表."""
    try:
        result = await session.execute(select(BlockedDomain.domain))
    except (OperationalError, ProgrammingError) as e:
        await session.rollback()
        logger.warning(f"读取域名黑名单失败，按未拦截处理: {e}")
        return []
    return [domain for domain in result.scalars().all() if domain]


async def has_unrestricted_subscriber(
    session: AsyncSession, source_id: int, plan: str | None = None
) -> bool:
    """
    是否至少有一个订阅者处于无限制套餐.

    订阅/用户表不可用时返回 True（放行）。
    """
    plan = plan or get_settings().unrestricted_plan
    stmt = (
        select(Subscription.id)
        .join(User, User.id == Subscription.user_id)
        .where(Subscription.source_id == source_id, User.plan == plan)
        .limit(1)
    )
    try:
        result = await session.execute(stmt)
    except (OperationalError, ProgrammingError) as e:
        await session.rollback()
        logger.warning(f"读取订阅者套餐失败，按放行处理: {e}")
        return True
    return result.first() is not None


class DomainGatekeeper:
    """单次批处理内共享的黑名单快照."""

    def __init__(
        self,
        session: AsyncSession,
        blocked_domains: list[str] | None = None,
        unrestricted_plan: str | None = None,
    ) -> None:
        self.session = session
        self.blocked_domains = blocked_domains
        self.unrestricted_plan = unrestricted_plan

    async def should_skip(self, feed_url: str, source_id: int) -> bool:
        """True 表示不应抓取该源."""
        hostname = extract_domain(feed_url)
        if not hostname:
            return False

        if self.blocked_domains is None:
            self.blocked_domains = await get_blocked_domains(self.session)

        if not is_domain_blocked(hostname, self.blocked_domains):
            return False

        if await has_unrestricted_subscriber(
            self.session, source_id, self.unrestricted_plan
        ):
            logger.info(f"域名 {hostname} 已被拦截，但存在无限制套餐订阅者，继续抓取")
            return False

        logger.info(f"跳过被拦截的域名: {hostname}")
        return True
