"""
FormatParser：raw bytes + 声明扩展名 → CaptionDocument

流程：
1. 前置校验（不做任何解析工作）：大小 ≤ max_file_size，扩展名在支持列表中
2. 解码 UTF-8（丢弃 BOM，非法字节替换）
3. 按内容嗅探语法，嗅探不出时使用声明的扩展名
4. 语法层产出原始条目 → 规范化：
   - 缺少 type 的条目视为 caption
   - index 按返回顺序从 1 重排（不信任输入 index）
   - start/end/duration 缺省为 0
   - content/text 过 sanitize
5. 没有可用条目 → ParseError("no valid subtitles found")

语法层的任何异常都包装为 ParseError（保留原始信息）。
"""
from pathlib import PurePath
from typing import Any, Dict, List, Optional

from subkit.errors import ParseError, UnsupportedFormatError, ValidationError
from subkit.formats import DEFAULT_SUB_FPS, SUPPORTED_FORMATS, detect_format, get_codec
from subkit.schema import Caption, CaptionDocument
from subkit.utils.logger import debug
from .sanitize import sanitize

MAX_FILE_SIZE = 50 * 1024 * 1024  # 50 MiB


def normalize_extension(name_or_ext: str) -> str:
    """"movie.SRT" / ".srt" / "srt" → "srt"。"""
    value = (name_or_ext or "").strip()
    suffix = PurePath(value).suffix
    if suffix:
        return suffix[1:].lower()
    return value.lstrip(".").lower()


def validate_upload(size: int, declared_extension: str, *, max_file_size: int = MAX_FILE_SIZE) -> str:
    """
    上传前置校验。

    Returns:
        规范化后的扩展名

    Raises:
        ValidationError: 超过大小上限
        UnsupportedFormatError: 扩展名不在支持列表
    """
    if size > max_file_size:
        raise ValidationError(f"File size exceeds {max_file_size // (1024 * 1024)}MB limit")
    ext = normalize_extension(declared_extension)
    if ext not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(
            f"Invalid file type. Supported formats: {', '.join('.' + f for f in SUPPORTED_FORMATS)}"
        )
    return ext


def decode_payload(raw: bytes) -> str:
    return raw.decode("utf-8-sig", errors="replace")


def _int_or_zero(value: Any) -> int:
    if value is None or value == "":
        return 0
    return int(value)


def normalize_entries(entries: List[Dict[str, Any]], *, include_meta: bool = False) -> List[Caption]:
    """原始条目 → 规范化 Caption 列表（重排 index、补默认值、清洗文本）。"""
    captions: List[Caption] = []
    for entry in entries:
        kind = entry.get("type") or "caption"
        if kind != "caption" and not include_meta:
            continue
        start = _int_or_zero(entry.get("start"))
        end = _int_or_zero(entry.get("end"))
        duration = entry.get("duration")
        raw_text = entry.get("text") or ""
        captions.append(Caption(
            index=len(captions) + 1,
            start_ms=start,
            end_ms=end,
            duration_ms=_int_or_zero(duration) if duration is not None else end - start,
            content=sanitize(entry.get("content") or raw_text),
            text=sanitize(raw_text),
            kind="caption" if kind == "caption" else "meta",
        ))
    return captions


def parse(
    raw: bytes,
    declared_extension: str,
    *,
    max_file_size: int = MAX_FILE_SIZE,
    include_meta: bool = False,
    fps: float = DEFAULT_SUB_FPS,
) -> CaptionDocument:
    """
    解析上传的字幕文件。

    Args:
        raw: 文件字节
        declared_extension: 文件名或扩展名（如 "movie.srt" / "srt"）
        max_file_size: 大小上限（字节）
        include_meta: 是否保留 meta 条目
        fps: MicroDVD 帧率

    Returns:
        CaptionDocument（index 为 1..N）

    Raises:
        ValidationError / UnsupportedFormatError: 前置校验失败
        ParseError: 语法失败或没有可用字幕
    """
    ext = validate_upload(len(raw), declared_extension, max_file_size=max_file_size)
    text = decode_payload(raw)
    fmt: Optional[str] = detect_format(text) or ext
    debug(f"parse: declared={ext}, detected={fmt}, {len(raw)} bytes")

    try:
        entries = get_codec(fmt, fps=fps).parse(text)
        captions = normalize_entries(entries, include_meta=include_meta)
    except Exception as e:
        raise ParseError(f"Failed to parse subtitle file: {e}") from e

    if not any(c.is_caption for c in captions):
        raise ParseError("no valid subtitles found")
    return CaptionDocument(captions=captions, source_format=fmt)
