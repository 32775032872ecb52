"""User 与 Subscription 模型（只读取套餐与订阅关系）."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from feedloom.models.database import utc_datetime, utc_now


class User(SQLModel, table=True):
    """注册用户."""

    __tablename__ = "users"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(description="用户名")
    email: str = Field(unique=True, description="邮箱")
    plan: str = Field(default="free", index=True, description="套餐")
    created_at: datetime = Field(default_factory=utc_now, sa_type=utc_datetime())


class Subscription(SQLModel, table=True):
    """用户对 Source 的订阅."""

    __tablename__ = "subscriptions"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    source_id: int = Field(foreign_key="sources.id", index=True)
    custom_title: str | None = Field(default=None, description="自定义标题")
    created_at: datetime = Field(default_factory=utc_now, sa_type=utc_datetime())
