"""OpenRouter Chat - 本地 FastAPI 入口（供桌面/网页前端调用）"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from openrouter_chat.core.config import settings
from openrouter_chat.api.v1.router import api_router

# 全局日志配置：确保应用层 logger.info() 可见
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    from openrouter_chat.adapters.openrouter_client import openrouter_client

    logger = logging.getLogger(__name__)
    if not openrouter_client.api_key:
        logger.warning("未配置 OPENROUTER_API_KEY，发送前需在设置中填写")
    logger.info(f"OpenRouter 模型: {openrouter_client.model}")

    yield
    # Shutdown
    openrouter_client.cancel_current()
    await openrouter_client.aclose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="OpenRouter Chat - 流式对话客户端本地服务",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)

# CORS 中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API 路由注册
app.include_router(api_router, prefix="/api/v1")
