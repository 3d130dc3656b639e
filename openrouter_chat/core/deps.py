"""依赖项 - FastAPI Depends"""

from typing import Optional

from openrouter_chat.adapters.openrouter_client import OpenRouterClient, openrouter_client
from openrouter_chat.services.chat_service import ConversationStore

_conversation_store: Optional[ConversationStore] = None


def get_client() -> OpenRouterClient:
    """共享的 OpenRouter 客户端"""
    return openrouter_client


def get_conversation_store() -> ConversationStore:
    """进程内唯一会话（不做跨进程持久化）"""
    global _conversation_store
    if _conversation_store is None:
        _conversation_store = ConversationStore(openrouter_client)
    return _conversation_store
