"""
错误类型体系

每个异常携带对应的 HTTP 状态码，由 Flask 错误处理器统一转换为 JSON 响应：
{"error": "<message>", "details": [...]}
"""
from typing import Any, Optional


class EnarvaError(Exception):
    """业务错误基类"""
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class Unauthorized(EnarvaError):
    """未登录"""
    status_code = 401

    def __init__(self, message: str = "Unauthorized", details: Optional[Any] = None):
        super().__init__(message, details)


class Forbidden(EnarvaError):
    """已登录但角色/关系不足"""
    status_code = 403

    def __init__(self, message: str = "Forbidden", details: Optional[Any] = None):
        super().__init__(message, details)


class NotFound(EnarvaError):
    """引用的任务/子任务/质检/成员不存在"""
    status_code = 404


class InvalidState(EnarvaError):
    """当前状态不满足操作的前置条件"""
    status_code = 400


class ValidationError(EnarvaError):
    """请求体格式错误或枚举越界"""
    status_code = 400


class InternalError(EnarvaError):
    """数据库或未预期的错误"""
    status_code = 500

    def __init__(self, message: str = "Internal Server Error", details: Optional[Any] = None):
        super().__init__(message, details)
