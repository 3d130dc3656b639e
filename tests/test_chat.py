"""对话接口测试（ASGI + MockTransport，不访问真实 OpenRouter）"""

import base64
import io
import json

import pytest
from PIL import Image


def parse_sse(text: str) -> list[dict]:
    return [
        json.loads(block.removeprefix("data: "))
        for block in text.split("\n\n")
        if block.startswith("data: ")
    ]


def png_base64() -> str:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color="blue").save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode()


class TestChatApi:

    @pytest.mark.asyncio
    async def test_send_message_streams_events(self, client, chat_store):
        r = await client.post("/api/v1/chat/messages", json={"content": "hi"})
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/event-stream")

        events = parse_sse(r.text)
        assert [e["type"] for e in events] == ["progress", "progress", "done"]
        assert [e.get("content") for e in events[:2]] == ["Hel", "Hello"]

    @pytest.mark.asyncio
    async def test_history_after_send(self, client, chat_store):
        await client.post("/api/v1/chat/messages", json={"content": "hi"})

        r = await client.get("/api/v1/chat/messages")
        assert r.status_code == 200
        data = r.json()
        assert [m["role"] for m in data["items"]] == ["user", "assistant"]
        assert data["items"][1]["content"] == "Hello"
        assert data["is_loading"] is False
        assert data["error_message"] is None

    @pytest.mark.asyncio
    async def test_empty_message_rejected(self, client, chat_store):
        r = await client.post("/api/v1/chat/messages", json={"content": "  "})
        assert r.status_code == 400
        assert chat_store.messages == []

    @pytest.mark.asyncio
    async def test_image_only_message(self, client, chat_store):
        r = await client.post(
            "/api/v1/chat/messages",
            json={"images": [{"data": png_base64(), "filename": "shot.jpg"}], "reasoning_effort": "none"},
        )
        assert r.status_code == 200

        user_msg = chat_store.messages[0]
        assert user_msg.content == ""
        assert len(user_msg.images) == 1
        assert user_msg.images[0].mime_type == "image/jpeg"
        assert chat_store.reasoning_effort.value == "none"

        request = chat_store.client._transport.requests[0]
        body = json.loads(request.content)
        assert "reasoning" not in body
        assert body["messages"][0]["content"][0]["type"] == "image_url"

    @pytest.mark.asyncio
    async def test_invalid_image_rejected(self, client, chat_store):
        r = await client.post(
            "/api/v1/chat/messages",
            json={"content": "look", "images": [{"data": "!!not-base64!!"}]},
        )
        assert r.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_api_key_error_event(self, client, chat_store):
        chat_store.client.api_key = ""

        r = await client.post("/api/v1/chat/messages", json={"content": "hi"})

        events = parse_sse(r.text)
        assert events == [{"type": "error", "message_id": events[0]["message_id"],
                           "message": "Please enter your OpenRouter API key"}]
        assert chat_store.client._transport.call_count == 0
        assert len(chat_store.messages) == 1

    @pytest.mark.asyncio
    async def test_new_chat_clears(self, client, chat_store):
        await client.post("/api/v1/chat/messages", json={"content": "hi"})

        r = await client.post("/api/v1/chat/new")
        assert r.status_code == 200

        r = await client.get("/api/v1/chat/messages")
        assert r.json()["items"] == []

    @pytest.mark.asyncio
    async def test_cancel_when_idle(self, client, chat_store):
        r = await client.post("/api/v1/chat/cancel")
        assert r.status_code == 200
        assert chat_store.client.is_busy is False

    @pytest.mark.asyncio
    async def test_efforts(self, client):
        r = await client.get("/api/v1/chat/efforts")
        assert r.status_code == 200
        options = r.json()
        assert options[0] == {"value": "none", "display_name": "None"}
        assert options[-1] == {"value": "xhigh", "display_name": "Extra High"}


class TestSettingsApi:

    @pytest.mark.asyncio
    async def test_get_settings_hides_key(self, client, chat_store):
        r = await client.get("/api/v1/settings")
        assert r.status_code == 200
        data = r.json()
        assert data["has_api_key"] is True
        assert "api_key" not in data
        assert data["model"] == "test/model"

    @pytest.mark.asyncio
    async def test_update_settings(self, client, chat_store):
        r = await client.put(
            "/api/v1/settings",
            json={"api_key": "", "system_prompt": "Be brief.", "reasoning_effort": "low"},
        )
        assert r.status_code == 200
        data = r.json()
        assert data["has_api_key"] is False
        assert data["system_prompt"] == "Be brief."
        assert data["reasoning_effort"] == "low"
        assert chat_store.client.system_prompt == "Be brief."

    @pytest.mark.asyncio
    async def test_invalid_effort_rejected(self, client, chat_store):
        r = await client.put("/api/v1/settings", json={"reasoning_effort": "turbo"})
        assert r.status_code == 422
