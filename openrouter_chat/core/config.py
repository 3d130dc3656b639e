"""应用配置管理 - 支持环境变量 + .env 文件"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """客户端配置 - 优先从环境变量读取，其次 .env"""

    # ========== 基础配置 ==========
    APP_NAME: str = "OpenRouter Chat"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True

    # ========== OpenRouter 配置 ==========
    # 凭据与系统提示词为运行时可变项，这里只提供启动时的初始值
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_MODEL: str = "google/gemini-3-pro-preview"
    MAX_TOKENS: int = 10000
    SYSTEM_PROMPT: str = ""
    DEFAULT_REASONING_EFFORT: str = "medium"

    # ========== 超时配置（秒） ==========
    # 推理模型首个 token 可能很慢，读超时需要放宽
    STREAM_TIMEOUT: float = 300.0
    CONNECT_TIMEOUT: float = 10.0

    # ========== CORS配置 ==========
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()
