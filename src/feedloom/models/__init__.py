"""数据模型."""

from feedloom.models.article import Article
from feedloom.models.blocked_domain import BlockedDomain
from feedloom.models.database import get_session, init_db
from feedloom.models.source import IconType, Source
from feedloom.models.user import Subscription, User

__all__ = [
    "Article",
    "BlockedDomain",
    "IconType",
    "Source",
    "Subscription",
    "User",
    "get_session",
    "init_db",
]
