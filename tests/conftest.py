"""测试配置 - pytest fixtures"""

import httpx
import pytest

from openrouter_chat.core.deps import get_client, get_conversation_store
from openrouter_chat.main import app
from openrouter_chat.services.chat_service import ConversationStore
from stubs import make_client, sse_body, sse_line


@pytest.fixture
def chat_store():
    """走 MockTransport 的会话，覆盖应用依赖"""
    body = sse_body(sse_line(content="Hel"), sse_line(content="lo"))
    store = ConversationStore(make_client(lambda request: httpx.Response(200, content=body)))
    app.dependency_overrides[get_conversation_store] = lambda: store
    app.dependency_overrides[get_client] = lambda: store.client
    yield store
    app.dependency_overrides.clear()


@pytest.fixture
async def client():
    """异步测试客户端（ASGI，不发真实网络请求）"""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
