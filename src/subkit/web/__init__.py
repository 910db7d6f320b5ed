"""
Web 层：FastAPI 应用 + 路由（上传 / 下载 / 流式下载 / AI 优化）
"""
from .server import create_app

__all__ = ["create_app"]
