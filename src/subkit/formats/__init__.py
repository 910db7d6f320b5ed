"""
字幕语法注册表（parse / serialize 共用，保证对称）

公共 API：
- SUPPORTED_FORMATS / CONTENT_TYPES / BOM_FORMATS：静态格式表
- get_codec(fmt): 取格式对应的 codec，未知格式抛 UnsupportedFormatError
- detect_format(text): 按内容嗅探格式，无法判断返回 None
"""
import json
import re
from typing import Dict, Optional

from subkit.errors import UnsupportedFormatError
from .base import SubtitleCodec
from .json_fmt import JsonCodec
from .lrc_fmt import LrcCodec
from .pysubs2_fmt import Pysubs2Codec
from .sbv_fmt import SbvCodec
from .smi_fmt import SmiCodec
from .srt_fmt import SrtCodec, format_time
from .vtt_fmt import VttCodec

SUPPORTED_FORMATS = ("srt", "vtt", "sub", "sbv", "lrc", "smi", "ssa", "ass", "json")

CONTENT_TYPES: Dict[str, str] = {
    "srt": "application/x-subrip",
    "vtt": "text/vtt",
    "sub": "text/plain",
    "sbv": "text/plain",
    "lrc": "text/plain",
    "smi": "text/plain",
    "ssa": "text/plain",
    "ass": "text/plain",
    "json": "application/json",
}

# 文本格式输出加 UTF-8 BOM，json 不加
BOM_FORMATS = frozenset(("srt", "vtt", "sub", "sbv", "lrc", "smi", "ssa", "ass"))

DEFAULT_SUB_FPS = 25.0


def get_codec(fmt: str, *, fps: float = DEFAULT_SUB_FPS) -> SubtitleCodec:
    """
    取格式对应的 codec。

    Args:
        fmt: 格式名（不带点，大小写不敏感）
        fps: MicroDVD 帧率

    Raises:
        UnsupportedFormatError: 格式不在支持列表中
    """
    fmt = (fmt or "").lower().lstrip(".")
    if fmt == "srt":
        return SrtCodec()
    if fmt == "vtt":
        return VttCodec()
    if fmt == "sbv":
        return SbvCodec()
    if fmt == "lrc":
        return LrcCodec()
    if fmt == "smi":
        return SmiCodec()
    if fmt == "json":
        return JsonCodec()
    if fmt in ("ass", "ssa"):
        return Pysubs2Codec(fmt, fmt)
    if fmt == "sub":
        return Pysubs2Codec("sub", "microdvd", fps=fps)
    raise UnsupportedFormatError(
        f"Unsupported subtitle format: {fmt or '(none)'}. "
        f"Supported formats: {', '.join(SUPPORTED_FORMATS)}"
    )


_SRT_TIMING_RE = re.compile(r"^\s*\d+:\d{2}:\d{2},\d{1,3}\s*-->", re.MULTILINE)
_VTT_TIMING_RE = re.compile(r"^\s*(?:\d+:)?\d{2}:\d{2}\.\d{3}\s*-->", re.MULTILINE)
_SBV_TIMING_RE = re.compile(r"^\d+:\d{2}:\d{2}\.\d{3},\d+:\d{2}:\d{2}\.\d{3}\s*$", re.MULTILINE)
_LRC_LINE_RE = re.compile(r"^\[(?:\d+:\d{2}|[a-zA-Z#]+:)")
_MICRODVD_RE = re.compile(r"^\{\d+\}\{\d*\}")


def detect_format(text: str) -> Optional[str]:
    """按内容嗅探字幕格式；无法判断时返回 None（由调用方回退到声明的扩展名）。"""
    stripped = text.lstrip("\ufeff \t\r\n")
    if not stripped:
        return None
    head = stripped[:4096]
    first_line = stripped.split("\n", 1)[0].strip()
    lowered = head.lower()

    if first_line.startswith("WEBVTT"):
        return "vtt"
    if "[script info]" in lowered:
        if "[v4+ styles]" in lowered or "scripttype: v4.00+" in lowered:
            return "ass"
        return "ssa"
    if lowered.startswith("<sami") or "<sync" in lowered:
        return "smi"
    if _LRC_LINE_RE.match(first_line):
        return "lrc"
    if first_line.startswith("["):
        try:
            if isinstance(json.loads(stripped), list):
                return "json"
        except ValueError:
            pass
    if _MICRODVD_RE.match(first_line):
        return "sub"
    if _SRT_TIMING_RE.search(head):
        return "srt"
    if _SBV_TIMING_RE.search(head):
        return "sbv"
    if _VTT_TIMING_RE.search(head):
        return "vtt"
    return None


__all__ = [
    "BOM_FORMATS",
    "CONTENT_TYPES",
    "DEFAULT_SUB_FPS",
    "SUPPORTED_FORMATS",
    "SubtitleCodec",
    "detect_format",
    "format_time",
    "get_codec",
]
