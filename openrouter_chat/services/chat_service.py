"""
对话服务 - 会话状态与流式发送
用户消息 + 助手占位 → OpenRouter SSE → 占位消息原地更新 → 完成 / 回滚
"""

import asyncio
import logging
from typing import AsyncIterator, Callable, Iterable, Optional

from openrouter_chat.adapters.openrouter_client import OpenRouterClient
from openrouter_chat.core.config import settings
from openrouter_chat.models import ImageAttachment, Message, ReasoningEffort
from openrouter_chat.schemas.chat import ChatEvent

logger = logging.getLogger(__name__)

Listener = Callable[[ChatEvent], None]


class ConversationStore:
    """
    UI 侧持有的会话状态
    客户端只拿到消息快照；占位消息的 content/reasoning 随进度回调被整体覆盖
    """

    def __init__(self, client: OpenRouterClient, reasoning_effort: Optional[ReasoningEffort] = None):
        self.client = client
        self.messages: list[Message] = []
        self.pending_images: list[ImageAttachment] = []
        self.is_loading = False
        self.error_message: Optional[str] = None
        self.reasoning_effort = ReasoningEffort(reasoning_effort or settings.DEFAULT_REASONING_EFFORT)
        self._placeholder: Optional[Message] = None
        self._listener: Optional[Listener] = None

    # ========== 附件 ==========

    def add_images(self, images: Iterable[ImageAttachment]):
        self.pending_images.extend(images)

    def remove_image(self, image_id: str):
        self.pending_images = [img for img in self.pending_images if img.id != image_id]

    # ========== 发送 ==========

    def send_message(self, text: str, listener: Optional[Listener] = None) -> Optional[Message]:
        """
        发送消息，返回助手占位消息；文本与图片都为空时不发送，返回 None
        进行中的上一轮会被抢占，其占位消息保留已收到的部分内容
        """
        text = text.strip()
        if not text and not self.pending_images:
            return None

        self._abandon_current()

        self.messages.append(Message.user(text, self.pending_images))
        self.pending_images = []
        self.is_loading = True
        self.error_message = None

        placeholder = Message.placeholder()
        self.messages.append(placeholder)
        self._placeholder = placeholder
        self._listener = listener

        def on_progress(content: str, reasoning: Optional[str]):
            placeholder.content = content
            placeholder.reasoning = reasoning
            self._emit(listener, ChatEvent(
                type="progress", message_id=placeholder.id, content=content, reasoning=reasoning,
            ))

        def on_complete():
            self._finish(placeholder)
            self._emit(listener, ChatEvent(type="done", message_id=placeholder.id))

        def on_error(error: Exception):
            self.messages = [m for m in self.messages if m is not placeholder]
            self.error_message = str(error)
            self._finish(placeholder)
            logger.warning(f"发送失败，已移除占位消息: {error}")
            self._emit(listener, ChatEvent(type="error", message_id=placeholder.id, message=str(error)))

        self.client.start(
            self.messages[:-1],
            self.reasoning_effort,
            on_progress=on_progress,
            on_complete=on_complete,
            on_error=on_error,
        )
        return placeholder

    async def send_message_stream(self, text: str) -> AsyncIterator[str]:
        """
        发送消息并返回SSE流
        每个事件为 data: {ChatEvent}\\n\\n，终止事件后结束
        消费方提前断开时取消本轮请求（已被新消息抢占的除外）
        """
        queue: asyncio.Queue[ChatEvent] = asyncio.Queue()
        placeholder = self.send_message(text, listener=queue.put_nowait)
        if placeholder is None:
            return

        finished = False
        try:
            while True:
                event = await queue.get()
                yield event.to_sse()
                if event.is_terminal:
                    finished = True
                    break
        finally:
            if not finished and self._placeholder is placeholder:
                logger.info(f"[SSE] 客户端断开，取消进行中的请求: message_id={placeholder.id}")
                self.cancel()

    def cancel(self):
        """只取消进行中的请求，保留已有消息（空占位除外）"""
        self.client.cancel_current()
        self._abandon_current()
        self.is_loading = False

    def new_chat(self):
        self.client.cancel_current()
        self._abandon_current()
        self.messages = []
        self.pending_images = []
        self.is_loading = False
        self.error_message = None
        logger.info("新对话：会话已清空")

    # ========== 内部 ==========

    def _abandon_current(self):
        """
        通知上一轮的监听方已取消（客户端侧的取消是静默的）
        尚未收到任何内容的占位消息直接移除，避免下一轮快照带上空的 assistant 消息
        """
        placeholder, listener = self._placeholder, self._listener
        self._placeholder = None
        self._listener = None
        if placeholder is None:
            return
        if not placeholder.content and not placeholder.reasoning:
            self.messages = [m for m in self.messages if m is not placeholder]
        self._emit(listener, ChatEvent(type="cancelled", message_id=placeholder.id))

    def _finish(self, placeholder: Message):
        if self._placeholder is placeholder:
            self._placeholder = None
            self._listener = None
            self.is_loading = False

    @staticmethod
    def _emit(listener: Optional[Listener], event: ChatEvent):
        if listener is not None:
            listener(event)
