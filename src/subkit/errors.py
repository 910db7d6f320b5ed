"""
错误分类（稳定的 error kind + HTTP status）

所有错误都在请求边界被捕获，转换为结构化失败响应：
    {"success": false, "error": "<message>", "kind": "<ErrorKind>"}

核心内部不做自动重试，是否重试由外部调用方决定。
"""
from typing import Any, Dict, Optional


class SubkitError(Exception):
    """所有可恢复错误的基类。"""

    kind = "SubkitError"
    status_code = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message, "kind": self.kind}


class ValidationError(SubkitError):
    """文件过大 / 扩展名非法 / content-type 错误 / 请求体不合法。"""
    kind = "ValidationError"
    status_code = 400


class UnsupportedFormatError(SubkitError):
    """未知的源格式或目标格式。"""
    kind = "UnsupportedFormatError"
    status_code = 400


class ParseError(SubkitError):
    """语法解析失败，或没有任何可用字幕。"""
    kind = "ParseError"
    status_code = 422


class SerializationError(SubkitError):
    """合法文档在 build 阶段失败（如时间轴不一致）。"""
    kind = "SerializationError"
    status_code = 400


class BatchSizeError(SubkitError):
    """单次请求条目数超过上限。"""
    kind = "BatchSizeError"
    status_code = 400


class UpstreamError(SubkitError):
    """外部优化服务的通用失败。"""
    kind = "UpstreamError"
    status_code = 502


class UpstreamFormatError(UpstreamError):
    """优化服务返回了不符合协议的输出。"""
    kind = "UpstreamFormatError"
    status_code = 502


class UpstreamAuthError(UpstreamError):
    """凭证被拒绝（客户端应提示用户重新输入 key，而不是盲目重试）。"""
    kind = "UpstreamAuthError"
    status_code = 401


class RateLimitError(SubkitError):
    """超出限流窗口。"""
    kind = "RateLimitError"
    status_code = 429
