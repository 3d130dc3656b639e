"""
对话接口
messages SSE + 会话快照 + 取消 / 新对话 + 推理强度选项
"""

import base64
import binascii
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from openrouter_chat.core.deps import get_conversation_store
from openrouter_chat.models import ImageAttachment, ReasoningEffort
from openrouter_chat.schemas.chat import (
    ConversationResponse, EffortOption, ImageUpload,
    MessageRequest, MessageResponse,
)
from openrouter_chat.services.chat_service import ConversationStore
from openrouter_chat.services.image_service import (
    DEFAULT_MIME_TYPE, attachment_from_bytes, mime_type_for_path,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _decode_upload(upload: ImageUpload) -> ImageAttachment:
    try:
        raw = base64.b64decode(upload.data, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="图片数据不是合法的 base64")

    mime_type = mime_type_for_path(upload.filename) if upload.filename else DEFAULT_MIME_TYPE
    attachment = attachment_from_bytes(raw, mime_type=mime_type)
    if attachment is None:
        raise HTTPException(status_code=400, detail="无法识别的图片格式")
    return attachment


@router.get("/efforts", response_model=list[EffortOption])
async def list_efforts():
    """推理强度选项"""
    return [EffortOption(value=e.value, display_name=e.display_name) for e in ReasoningEffort]


@router.get("/messages", response_model=ConversationResponse)
async def get_messages(store: ConversationStore = Depends(get_conversation_store)):
    """当前会话快照"""
    return ConversationResponse(
        items=[MessageResponse.from_message(m) for m in store.messages],
        is_loading=store.is_loading,
        error_message=store.error_message,
    )


@router.post("/messages")
async def send_message(
    request: MessageRequest,
    store: ConversationStore = Depends(get_conversation_store),
):
    """发送消息 - SSE流式返回AI回答（progress 为累积值）"""
    if not request.content.strip() and not request.images:
        raise HTTPException(status_code=400, detail="消息内容和图片不能同时为空")

    attachments = [_decode_upload(upload) for upload in request.images]
    store.add_images(attachments)
    if request.reasoning_effort is not None:
        store.reasoning_effort = request.reasoning_effort

    return StreamingResponse(
        store.send_message_stream(request.content),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/cancel")
async def cancel(store: ConversationStore = Depends(get_conversation_store)):
    """取消进行中的回答"""
    store.cancel()
    return {"message": "已取消"}


@router.post("/new")
async def new_chat(store: ConversationStore = Depends(get_conversation_store)):
    """新对话"""
    store.new_chat()
    return {"message": "已开始新对话"}
