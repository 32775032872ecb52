"""Source 订阅源模型."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from feedloom.models.database import utc_datetime, utc_now


class IconType:
    """图标模式."""

    AUTO = "auto"
    CUSTOM = "custom"
    NONE = "none"


class Source(SQLModel, table=True):
    """外部 Feed 源，由所有订阅用户共享."""

    __tablename__ = "sources"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    url: str = Field(unique=True, index=True, description="Feed URL")
    title: str = Field(description="Feed 标题")
    description: str | None = Field(default=None, description="Feed 描述")
    site_url: str | None = Field(default=None, description="网站 URL")
    icon_url: str | None = Field(default=None, description="图标 URL")
    icon_type: str | None = Field(
        default=IconType.AUTO, description="图标模式: auto|custom|none"
    )
    icon_updated_at: datetime | None = Field(default=None, sa_type=utc_datetime())
    last_fetched: datetime | None = Field(
        default=None,
        index=True,
        sa_type=utc_datetime(),
        description="最近一次抓取时间",
    )
    created_at: datetime = Field(default_factory=utc_now, sa_type=utc_datetime())
    updated_at: datetime = Field(default_factory=utc_now, sa_type=utc_datetime())
