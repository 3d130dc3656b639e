"""
OpenRouter API 客户端
封装 chat/completions 流式接口：请求构建 / SSE 解析累积 / 单请求取消
"""

import asyncio
import codecs
import logging
import threading
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Optional, Sequence

import httpx
from pydantic import ValidationError

from openrouter_chat.core.config import settings
from openrouter_chat.adapters.openrouter_errors import (
    OpenRouterError,
    MissingCredentialError,
    InvalidResponseError,
    ApiError,
    RequestCancelled,
)
from openrouter_chat.adapters.openrouter_types import (
    ChatMessagePayload, ChatRequest, ReasoningConfig,
    TextPart, ImageUrl, ImageUrlPart,
    StreamDelta,
)
from openrouter_chat.models import Message, ReasoningEffort

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

ProgressCallback = Callable[[str, Optional[str]], None]


class CancelToken:
    """协作式取消标记，流式循环在每行开始前检查"""

    def __init__(self):
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self):
        if self._cancelled:
            raise RequestCancelled()


@dataclass
class _Operation:
    token: CancelToken
    task: Optional[asyncio.Task] = None


class StreamAccumulator:
    """
    逐行消费 SSE 数据，content 与 reasoning 两个通道分别累积
    feed() 返回本行是否带来了增量；遇到 [DONE] 后 done 置为 True
    """

    def __init__(self):
        self.content = ""
        self.reasoning: Optional[str] = None
        self.done = False

    def feed(self, line: str) -> bool:
        if not line.startswith(DATA_PREFIX):
            return False

        json_str = line[len(DATA_PREFIX):]
        if json_str == DONE_SENTINEL:
            self.done = True
            return False

        try:
            chunk = StreamDelta.model_validate_json(json_str)
        except ValidationError as e:
            logger.debug(f"[SSE] 跳过无法解析的行: {e.error_count()} errors, line={json_str[:200]}")
            return False

        delta = chunk.first_delta
        if delta is None:
            return False

        changed = False
        if delta.content is not None:
            self.content += delta.content
            changed = True
        if delta.reasoning is not None:
            self.reasoning = (self.reasoning or "") + delta.reasoning
            changed = True
        return changed


def _message_payload(message: Message) -> ChatMessagePayload:
    """无图片 → {role, content}；有图片 → 文本段(非空时) + 每张图片一段"""
    if not message.images:
        return ChatMessagePayload(role=message.role.value, content=message.content)

    parts = []
    if message.content:
        parts.append(TextPart(text=message.content))
    for image in message.images:
        parts.append(ImageUrlPart(image_url=ImageUrl(url=image.data_url)))
    return ChatMessagePayload(role=message.role.value, content=parts)


class OpenRouterClient:
    """OpenRouter HTTP API 客户端，同一时刻最多一个进行中的请求"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        system_prompt: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.OPENROUTER_API_KEY if api_key is None else api_key
        self.system_prompt = settings.SYSTEM_PROMPT if system_prompt is None else system_prompt
        self.base_url = (base_url or settings.OPENROUTER_BASE_URL).rstrip("/")
        self.model = model or settings.OPENROUTER_MODEL
        self.max_tokens = max_tokens or settings.MAX_TOKENS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._current: Optional[_Operation] = None
        self._lock = threading.Lock()

    def _create_client(self) -> httpx.AsyncClient:
        """创建新的 httpx 客户端实例（凭据按请求注入，不放进默认 headers）"""
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(settings.STREAM_TIMEOUT, connect=settings.CONNECT_TIMEOUT),
            transport=self._transport,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = self._create_client()
        return self._client

    async def aclose(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    def update_credentials(self, api_key: Optional[str] = None, system_prompt: Optional[str] = None):
        """设置页保存时调用，下一次 send 生效"""
        if api_key is not None:
            self.api_key = api_key
            logger.info(f"[OpenRouter] API key 已更新 (configured={bool(api_key)})")
        if system_prompt is not None:
            self.system_prompt = system_prompt
            logger.info(f"[OpenRouter] 系统提示词已更新 (len={len(system_prompt)})")

    # ==================== 请求槽位 ====================

    @property
    def is_busy(self) -> bool:
        return self._current is not None

    def cancel_current(self):
        """取消进行中的请求并清空槽位，不等待其结束"""
        with self._lock:
            previous, self._current = self._current, None
        if previous is not None:
            previous.token.cancel()
            logger.info("[SSE] 已请求取消当前流")

    def _install(self, operation: _Operation):
        with self._lock:
            previous, self._current = self._current, operation
        if previous is not None:
            previous.token.cancel()
            logger.info("[SSE] 新请求抢占，取消上一个流")

    def _release(self, token: CancelToken):
        with self._lock:
            if self._current is not None and self._current.token is token:
                self._current = None

    # ==================== Request ====================

    def build_request_body(self, messages: Sequence[Message], effort: ReasoningEffort) -> dict:
        effort = ReasoningEffort(effort)
        payloads = []
        if self.system_prompt:
            payloads.append(ChatMessagePayload(role="system", content=self.system_prompt))
        payloads.extend(_message_payload(m) for m in messages)

        request = ChatRequest(
            model=self.model,
            messages=payloads,
            max_tokens=self.max_tokens,
            stream=True,
            reasoning=ReasoningConfig(effort=effort.value) if effort != ReasoningEffort.NONE else None,
        )
        return request.model_dump(exclude_none=True)

    # ==================== Completion (SSE) ====================

    async def send(
        self,
        messages: Sequence[Message],
        effort: ReasoningEffort,
        on_progress: ProgressCallback,
        token: Optional[CancelToken] = None,
    ) -> None:
        """
        流式对话补全 (SSE)
        每处理一行带增量的数据，以累积后的 (content, reasoning) 调用 on_progress
        正常结束返回 None；取消时抛 RequestCancelled
        """
        api_key = self.api_key
        if not api_key:
            if token is not None:
                self._release(token)
            raise MissingCredentialError()

        if token is None:
            token = CancelToken()
            self._install(_Operation(token=token))

        try:
            await self._stream(api_key, list(messages), effort, on_progress, token)
        finally:
            self._release(token)

    async def _stream(
        self,
        api_key: str,
        messages: list[Message],
        effort: ReasoningEffort,
        on_progress: ProgressCallback,
        token: CancelToken,
    ) -> None:
        body = self.build_request_body(messages, effort)
        logger.info(
            f"[SSE] 开始流式请求: model={body['model']}, messages={len(body['messages'])}, "
            f"reasoning={body.get('reasoning', {}).get('effort', 'none')}"
        )

        try:
            async with self.client.stream(
                "POST",
                "/chat/completions",
                json=body,
                headers={"Authorization": f"Bearer {api_key}"},
            ) as response:
                token.raise_if_cancelled()

                if response.status_code != 200:
                    await response.aread()
                    error_body = response.text
                    token.raise_if_cancelled()
                    logger.warning(f"[OpenRouter] 请求失败: status={response.status_code}, body={error_body[:200]}")
                    raise ApiError(response.status_code, error_body)

                await self._consume(response, on_progress, token)
        except httpx.HTTPError as e:
            token.raise_if_cancelled()
            logger.warning(f"[OpenRouter] 传输异常: {type(e).__name__}: {e}")
            raise InvalidResponseError(str(e)) from e

    async def _consume(
        self,
        response: httpx.Response,
        on_progress: ProgressCallback,
        token: CancelToken,
    ) -> None:
        accumulator = StreamAccumulator()
        line_count = 0

        async for line in _iter_lines(response):
            token.raise_if_cancelled()
            line_count += 1

            if accumulator.feed(line):
                on_progress(accumulator.content, accumulator.reasoning)

            if accumulator.done:
                logger.info(
                    f"[SSE] 流结束([DONE]), 总行数={line_count}, "
                    f"content长度={len(accumulator.content)}, reasoning长度={len(accumulator.reasoning or '')}"
                )
                return

        token.raise_if_cancelled()
        logger.info(f"[SSE] 流结束(连接关闭), 总行数={line_count}, content长度={len(accumulator.content)}")

    def start(
        self,
        messages: Sequence[Message],
        effort: ReasoningEffort,
        on_progress: ProgressCallback,
        on_complete: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> asyncio.Task:
        """
        回调式发送：在当前事件循环中调度 send，抢占进行中的请求
        取消是静默的，不会触发 on_complete / on_error
        """
        token = CancelToken()
        snapshot = list(messages)

        async def run():
            try:
                await self.send(snapshot, effort, on_progress, token=token)
            except RequestCancelled:
                logger.info("[SSE] 请求已取消，静默结束")
                return
            except Exception as e:
                if token.cancelled:
                    return
                if not isinstance(e, OpenRouterError):
                    logger.exception("[SSE] 流处理异常")
                if on_error:
                    on_error(e)
                return

            if token.cancelled:
                return
            if on_complete:
                on_complete()

        task = asyncio.get_running_loop().create_task(run())
        self._install(_Operation(token=token, task=task))
        return task


async def _iter_lines(response: httpx.Response) -> AsyncIterator[str]:
    """增量 UTF-8 解码并按换行切分，跨 chunk 的半行保留在缓冲区"""
    decoder = codecs.getincrementaldecoder("utf-8")("replace")
    buffer = ""
    async for raw_chunk in response.aiter_bytes():
        buffer += decoder.decode(raw_chunk, final=False)
        while "\n" in buffer:
            line, buffer = buffer.split("\n", 1)
            yield line.rstrip("\r")

    buffer += decoder.decode(b"", final=True)
    if buffer:
        yield buffer.rstrip("\r")


# 全局单例
openrouter_client = OpenRouterClient()
