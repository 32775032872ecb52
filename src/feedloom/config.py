"""应用配置管理."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置（环境变量）."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # 应用配置
    database_url: str = "sqlite+aiosqlite:///./feedloom.db"

    # 定时抓取配置
    fetch_enabled: bool = True
    fetch_interval_minutes: int = 5
    fetch_batch_size: int = 20
    staleness_threshold_minutes: int = 30
    prune_days: int = 30

    # HTTP 配置
    fetch_timeout_seconds: float = 30.0
    feed_user_agent: str = "feedloom/1.0 (RSS Reader; +https://github.com/feedloom/feedloom)"
    delay_between_feeds_seconds: float = 0.5
    delay_after_error_seconds: float = 1.0

    # OpenGraph 图片抓取
    og_image_timeout_seconds: float = 5.0
    og_image_max_bytes: int = 50 * 1024

    # 存储限制
    insert_chunk_size: int = 50
    max_query_parameters: int = 100
    content_max_bytes: int = 500_000
    description_max_chars: int = 5_000

    # 不受域名黑名单限制的套餐
    unrestricted_plan: str = "enterprise"


@lru_cache
def get_settings() -> Settings:
    """获取应用配置（带缓存）."""
    return Settings()
