"""
设置接口
API key / 系统提示词 / 推理强度，保存后下一次发送生效
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from openrouter_chat.adapters.openrouter_client import OpenRouterClient
from openrouter_chat.core.deps import get_client, get_conversation_store
from openrouter_chat.models import ReasoningEffort
from openrouter_chat.services.chat_service import ConversationStore

router = APIRouter()
logger = logging.getLogger(__name__)


class SettingsResponse(BaseModel):
    has_api_key: bool
    system_prompt: str
    model: str
    reasoning_effort: ReasoningEffort


class SettingsUpdate(BaseModel):
    api_key: Optional[str] = None
    system_prompt: Optional[str] = None
    reasoning_effort: Optional[ReasoningEffort] = None


def _to_response(client: OpenRouterClient, store: ConversationStore) -> SettingsResponse:
    # 不回传 API key 本身
    return SettingsResponse(
        has_api_key=bool(client.api_key),
        system_prompt=client.system_prompt,
        model=client.model,
        reasoning_effort=store.reasoning_effort,
    )


@router.get("", response_model=SettingsResponse)
async def get_settings(
    client: OpenRouterClient = Depends(get_client),
    store: ConversationStore = Depends(get_conversation_store),
):
    """获取当前设置"""
    return _to_response(client, store)


@router.put("", response_model=SettingsResponse)
async def update_settings(
    request: SettingsUpdate,
    client: OpenRouterClient = Depends(get_client),
    store: ConversationStore = Depends(get_conversation_store),
):
    """更新设置"""
    client.update_credentials(api_key=request.api_key, system_prompt=request.system_prompt)
    if request.reasoning_effort is not None:
        store.reasoning_effort = request.reasoning_effort
        logger.info(f"推理强度已设为: {request.reasoning_effort.value}")
    return _to_response(client, store)
