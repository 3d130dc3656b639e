"""健康检查接口"""

from fastapi import APIRouter

from openrouter_chat.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """前端启动时探测本地服务是否就绪"""
    return {
        "status": "healthy",
        "service": "openrouter-chat",
        "version": settings.APP_VERSION,
    }
