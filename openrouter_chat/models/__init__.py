"""
对话领域模型
Message / ImageAttachment / ReasoningEffort，会话即按时间顺序排列的 Message 列表
"""

import base64
import enum
import uuid
from dataclasses import dataclass, field
from typing import Optional


# ==================== 枚举类型 ====================

class MessageRole(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ReasoningEffort(str, enum.Enum):
    """推理强度，NONE 表示请求中不携带 reasoning 字段"""
    NONE = "none"
    MINIMAL = "minimal"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    XHIGH = "xhigh"

    @property
    def display_name(self) -> str:
        return _EFFORT_DISPLAY_NAMES[self]


_EFFORT_DISPLAY_NAMES = {
    ReasoningEffort.NONE: "None",
    ReasoningEffort.MINIMAL: "Minimal",
    ReasoningEffort.LOW: "Low",
    ReasoningEffort.MEDIUM: "Medium",
    ReasoningEffort.HIGH: "High",
    ReasoningEffort.XHIGH: "Extra High",
}


def _new_id() -> str:
    return str(uuid.uuid4())


# ==================== 附件 ====================

@dataclass(frozen=True)
class ImageAttachment:
    """粘贴/拖入的图片，data 统一为 PNG 编码"""
    data: bytes
    mime_type: str = "image/png"
    id: str = field(default_factory=_new_id)

    @property
    def data_url(self) -> str:
        """序列化请求时才生成，不做缓存"""
        payload = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{payload}"


# ==================== 消息 ====================

@dataclass(eq=False)
class Message:
    """
    对话中的一轮消息
    content / reasoning 在流式过程中被整体覆盖为累积值，role 与 images 创建后不变
    """
    role: MessageRole
    content: str = ""
    reasoning: Optional[str] = None
    images: tuple[ImageAttachment, ...] = ()
    id: str = field(default_factory=_new_id)

    def __post_init__(self):
        self.role = MessageRole(self.role)
        self.images = tuple(self.images)

    @classmethod
    def user(cls, content: str, images=()) -> "Message":
        return cls(role=MessageRole.USER, content=content, images=tuple(images))

    @classmethod
    def placeholder(cls) -> "Message":
        """助手占位消息，内容随流式进度原地填充"""
        return cls(role=MessageRole.ASSISTANT)
