"""feedloom 主应用入口."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from feedloom.api import fetch
from feedloom.config import get_settings
from feedloom.models.database import close_db, init_db
from feedloom.scheduler import create_scheduler, shutdown_scheduler

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """应用生命周期管理."""
    app_settings = get_settings()

    # 启动时初始化
    logger.info("正在初始化数据库...")
    await init_db(app_settings.database_url)

    logger.info("正在启动定时任务...")
    create_scheduler(app_settings)

    logger.info("feedloom 启动完成！")
    yield

    # 关闭时清理
    logger.info("正在关闭...")
    await shutdown_scheduler()
    await close_db()
    logger.info("feedloom 已关闭")


app = FastAPI(
    title="feedloom",
    description="RSS/Atom/RDF/JSON Feed 采集服务",
    version="0.1.0",
    lifespan=lifespan,
)

# 注册路由
app.include_router(fetch.router)


@app.get("/")
async def root() -> dict:
    """根路径."""
    return {
        "name": "feedloom",
        "version": "0.1.0",
        "description": "Feed 采集服务",
    }


@app.get("/health")
async def health() -> dict:
    """健康检查."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "feedloom.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
