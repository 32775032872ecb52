"""BlockedDomain 域名黑名单模型."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from feedloom.models.database import utc_datetime, utc_now


class BlockedDomain(SQLModel, table=True):
    """被屏蔽的域名，支持 *.example.com 通配形式."""

    __tablename__ = "blocked_domains"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    domain: str = Field(unique=True, index=True, description="域名或通配模式")
    reason: str | None = Field(
        default=None,
        description=(
            "屏蔽原因: illegal_content|excessive_automation|spam|malware|"
            "copyright_violation|other"
        ),
    )
    notes: str | None = Field(default=None, description="备注")
    created_at: datetime = Field(default_factory=utc_now, sa_type=utc_datetime())
    updated_at: datetime = Field(default_factory=utc_now, sa_type=utc_datetime())
    created_by: int | None = Field(default=None, foreign_key="users.id")
