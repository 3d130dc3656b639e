"""
图片附件处理
文件/剪贴板图片统一重编码为 PNG；mime_type 按文件扩展名推断，剪贴板位图固定为 image/png
"""

import io
import logging
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from openrouter_chat.models import ImageAttachment

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"

MIME_TYPES_BY_EXTENSION = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
}

PNG_MODES = {"1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"}


def mime_type_for_path(path: Union[str, Path]) -> str:
    ext = Path(path).suffix.lstrip(".").lower()
    return MIME_TYPES_BY_EXTENSION.get(ext, DEFAULT_MIME_TYPE)


def _to_png(raw: bytes) -> bytes:
    with Image.open(io.BytesIO(raw)) as img:
        img.load()
        # CMYK/YCbCr 等模式无法直接存为 PNG
        if img.mode not in PNG_MODES:
            img = img.convert("RGB")
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
    return buffer.getvalue()


def attachment_from_bytes(raw: bytes, mime_type: str = DEFAULT_MIME_TYPE) -> Optional[ImageAttachment]:
    """剪贴板/截图位图 → PNG 附件，无法识别时返回 None"""
    try:
        png = _to_png(raw)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning(f"图片解码失败，已忽略: {e}")
        return None
    return ImageAttachment(data=png, mime_type=mime_type)


def attachment_from_file(path: Union[str, Path]) -> Optional[ImageAttachment]:
    """拖入/粘贴的图片文件 → PNG 附件"""
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        logger.warning(f"读取图片文件失败 {path}: {e}")
        return None
    attachment = attachment_from_bytes(raw, mime_type=mime_type_for_path(path))
    if attachment is not None:
        logger.info(f"图片附件已添加: {path.name} ({attachment.mime_type}, {len(attachment.data)} bytes)")
    return attachment
