"""测试桩: SSE 数据构造 + 记录调用次数的 transport"""

import json

import httpx

from openrouter_chat.adapters.openrouter_client import OpenRouterClient

TEST_BASE_URL = "https://openrouter.test/api/v1"


def sse_line(content=None, reasoning=None, finish_reason=None) -> str:
    """构造一行 OpenRouter 流式 data 行"""
    delta = {}
    if content is not None:
        delta["content"] = content
    if reasoning is not None:
        delta["reasoning"] = reasoning
    choice = {"delta": delta}
    if finish_reason is not None:
        choice["finish_reason"] = finish_reason
    return f"data: {json.dumps({'choices': [choice]}, ensure_ascii=False)}\n"


def sse_body(*lines: str, done: bool = True) -> bytes:
    body = "".join(lines)
    if done:
        body += "data: [DONE]\n"
    return body.encode("utf-8")


class StubTransport(httpx.MockTransport):
    """记录请求的 MockTransport"""

    def __init__(self, handler):
        self.requests: list[httpx.Request] = []

        def recording_handler(request: httpx.Request):
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)

    @property
    def call_count(self) -> int:
        return len(self.requests)


def make_client(handler, api_key: str = "sk-test", system_prompt: str = "") -> OpenRouterClient:
    return OpenRouterClient(
        api_key=api_key,
        system_prompt=system_prompt,
        base_url=TEST_BASE_URL,
        model="test/model",
        max_tokens=10000,
        transport=StubTransport(handler),
    )
