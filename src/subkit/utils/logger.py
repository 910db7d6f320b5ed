"""
统一日志入口

pipeline / CLI 代码使用 info()/success()/warning()/error()/debug()；
web 模块直接使用 logging.getLogger(__name__)。

注意：不记录字幕正文，只记录数量、index 范围、批次号。
"""
import logging
import sys

_LOGGER_NAME = "subkit"
_configured = False


def get_logger(name: str = _LOGGER_NAME) -> logging.Logger:
    """获取 logger（首次调用时为根 logger 挂一个 stderr handler）。"""
    global _configured
    if not _configured:
        root = logging.getLogger(_LOGGER_NAME)
        if not root.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%H:%M:%S"))
            root.addHandler(handler)
            root.setLevel(logging.INFO)
        _configured = True
    return logging.getLogger(name)


def info(msg: str) -> None:
    get_logger().info(msg)


def success(msg: str) -> None:
    get_logger().info(f"✓ {msg}")


def warning(msg: str) -> None:
    get_logger().warning(msg)


def error(msg: str) -> None:
    get_logger().error(msg)


def debug(msg: str) -> None:
    get_logger().debug(msg)
