"""OpenRouter 客户端错误类型（封闭集合）"""


class OpenRouterError(Exception):
    """所有客户端错误的基类，str() 即展示给用户的描述"""


class MissingCredentialError(OpenRouterError):
    def __init__(self):
        super().__init__("Please enter your OpenRouter API key")


class InvalidResponseError(OpenRouterError):
    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__("Invalid response from server")


class ApiError(OpenRouterError):
    """非 200 响应，body 为完整响应文本，不做解析"""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"API Error ({status_code}): {body}")


class RequestCancelled(OpenRouterError):
    """请求被新请求或 cancel_current() 取消，调用方应静默处理"""

    def __init__(self):
        super().__init__("Request cancelled")
