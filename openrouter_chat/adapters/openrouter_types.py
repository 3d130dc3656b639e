"""OpenRouter chat/completions 请求与流式响应类型定义"""

from typing import Literal, Optional, Union
from pydantic import BaseModel, ConfigDict


# ========== Request ==========

class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageUrl(BaseModel):
    url: str  # data:<mime>;base64,<payload>


class ImageUrlPart(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl


ContentPart = Union[TextPart, ImageUrlPart]


class ChatMessagePayload(BaseModel):
    """单条消息：无图片时 content 为纯文本，有图片时为多段数组"""
    role: str
    content: Union[str, list[ContentPart]]


class ReasoningConfig(BaseModel):
    effort: str


class ChatRequest(BaseModel):
    model: str
    messages: list[ChatMessagePayload]
    max_tokens: int
    stream: bool = True
    reasoning: Optional[ReasoningConfig] = None  # effort=none 时整个字段省略


# ========== Stream ==========

class Delta(BaseModel):
    model_config = ConfigDict(extra="ignore")
    content: Optional[str] = None
    reasoning: Optional[str] = None


class StreamChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")
    delta: Optional[Delta] = None
    finish_reason: Optional[str] = None  # 目前不据此提前结束


class StreamDelta(BaseModel):
    """SSE 单行 data 负载"""
    model_config = ConfigDict(extra="ignore")
    choices: Optional[list[StreamChoice]] = None

    @property
    def first_delta(self) -> Optional[Delta]:
        if not self.choices:
            return None
        return self.choices[0].delta
