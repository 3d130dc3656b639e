"""API v1 路由汇总"""

from fastapi import APIRouter

from openrouter_chat.api.v1.endpoints import health, chat, settings

api_router = APIRouter()

# 健康检查
api_router.include_router(health.router, tags=["健康检查"])

# 对话
api_router.include_router(chat.router, prefix="/chat", tags=["对话"])

# 设置
api_router.include_router(settings.router, prefix="/settings", tags=["设置"])
