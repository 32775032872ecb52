"""Article 文章模型."""

from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from feedloom.models.database import utc_datetime, utc_now


class Article(SQLModel, table=True):
    """Feed 中出现过的一篇文章，每个 GUID 只创建一次."""

    __tablename__ = "articles"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("source_id", "guid", name="uq_articles_source_guid"),
    )

    id: int | None = Field(default=None, primary_key=True)
    source_id: int = Field(foreign_key="sources.id", index=True, description="关联 Source")
    guid: str = Field(index=True, description="去重键")
    title: str = Field(description="标题")
    link: str | None = Field(default=None, description="原文链接")
    content: str | None = Field(default=None, description="纯文本内容")
    description: str | None = Field(default=None, description="清洗后的 HTML 摘要")
    author: str | None = Field(default=None, description="作者")
    image_url: str | None = Field(default=None, description="配图 URL")
    audio_url: str | None = Field(default=None, description="音频 URL")
    comment_link: str | None = Field(default=None, description="评论页 URL")
    published_at: datetime | None = Field(
        default=None, index=True, sa_type=utc_datetime(), description="发布时间"
    )
    created_at: datetime = Field(default_factory=utc_now, sa_type=utc_datetime())
