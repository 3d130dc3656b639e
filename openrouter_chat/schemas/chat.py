"""对话 Schema"""

from typing import Literal, Optional
from pydantic import BaseModel

from openrouter_chat.models import Message, ReasoningEffort


class ChatEvent(BaseModel):
    """
    一次发送的通知事件，按发生顺序投递
    progress 携带累积值，done / error / cancelled 为终止事件
    """
    type: Literal["progress", "done", "error", "cancelled"]
    message_id: Optional[str] = None
    content: Optional[str] = None
    reasoning: Optional[str] = None
    message: Optional[str] = None  # error 描述

    @property
    def is_terminal(self) -> bool:
        return self.type != "progress"

    def to_sse(self) -> str:
        return f"data: {self.model_dump_json(exclude_none=True)}\n\n"


class ImageUpload(BaseModel):
    data: str  # base64
    filename: Optional[str] = None


class MessageRequest(BaseModel):
    content: str = ""
    images: list[ImageUpload] = []
    reasoning_effort: Optional[ReasoningEffort] = None


class MessageResponse(BaseModel):
    id: str
    role: str
    content: str
    reasoning: Optional[str] = None
    image_count: int = 0

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls(
            id=message.id,
            role=message.role.value,
            content=message.content,
            reasoning=message.reasoning,
            image_count=len(message.images),
        )


class ConversationResponse(BaseModel):
    items: list[MessageResponse]
    is_loading: bool
    error_message: Optional[str] = None


class EffortOption(BaseModel):
    value: str
    display_name: str
