"""
FormatSerializer：CaptionModel → 目标格式 bytes

职责：
- 格式分帧交给 subkit.formats（与 parse 对称）
- SRT 时间码 format_time 单独可测
- 文本格式加 UTF-8 BOM，json 不加
- 输出文件名：<原文件名去扩展名>-<品牌后缀>.<目标扩展名>
- 未知格式在产出任何字节之前抛 UnsupportedFormatError
- build 阶段的任何失败（如时间轴不一致）统一报告为 SerializationError
"""
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Sequence, Union

from subkit.errors import SerializationError, SubkitError, UnsupportedFormatError
from subkit.formats import (
    BOM_FORMATS,
    CONTENT_TYPES,
    DEFAULT_SUB_FPS,
    SubtitleCodec,
    format_time,
    get_codec,
)
from subkit.schema import Caption, CaptionDocument
from .sanitize import sanitize

UTF8_BOM = b"\xef\xbb\xbf"
BRAND_SUFFIX = "subtitletranslatorai.com"

_EXTENSION_RE = re.compile(r"\.[^/.]+$")

CaptionSource = Union[CaptionDocument, Sequence[Caption], Sequence[Mapping[str, Any]]]

__all__ = [
    "BRAND_SUFFIX",
    "SerializedOutput",
    "UTF8_BOM",
    "coerce_captions",
    "content_type",
    "format_time",
    "output_filename",
    "render_window",
    "serialize",
    "serialize_download",
    "uses_bom",
]


@dataclass
class SerializedOutput:
    """下载路径的返回值。"""
    data: bytes
    content_type: str
    filename: str
    uses_bom: bool


def _normalize_format(fmt: str) -> str:
    return (fmt or "").lower().lstrip(".")


def content_type(fmt: str) -> str:
    """格式 → MIME 类型（静态表）。"""
    fmt = _normalize_format(fmt)
    if fmt not in CONTENT_TYPES:
        raise UnsupportedFormatError(f"Unsupported subtitle format: {fmt or '(none)'}")
    return CONTENT_TYPES[fmt]


def uses_bom(fmt: str) -> bool:
    return _normalize_format(fmt) in BOM_FORMATS


def output_filename(original_name: str, fmt: str, *, brand_suffix: str = BRAND_SUFFIX) -> str:
    """
    "movie.srt" + "vtt" → "movie-subtitletranslatorai.com.vtt"
    """
    fmt = _normalize_format(fmt)
    stem = _EXTENSION_RE.sub("", original_name or "") or "subtitles"
    return f"{stem}-{brand_suffix}.{fmt}"


def coerce_captions(source: CaptionSource, *, include_meta: bool = False) -> List[Caption]:
    """
    CaptionDocument / Caption 列表 / wire dict 列表 → Caption 列表。

    meta 条目默认跳过；wire dict 缺 index 时按位置编号，content/text 过 sanitize。
    """
    if isinstance(source, CaptionDocument):
        return source.caption_entries(include_meta=include_meta)

    captions: List[Caption] = []
    for position, item in enumerate(source, start=1):
        if isinstance(item, Caption):
            caption = item
        elif isinstance(item, Mapping):
            try:
                caption = Caption.from_dict(dict(item), index=item.get("index") or position)
            except (TypeError, ValueError) as e:
                raise SerializationError(f"Invalid caption at position {position}: {e}") from e
            # 客户端传来的 wire dict 与上传文件一样必须清洗
            caption.content = sanitize(caption.content)
            caption.text = sanitize(caption.text)
        else:
            raise SerializationError(f"Invalid caption at position {position}: {type(item).__name__}")
        if caption.is_caption or include_meta:
            captions.append(caption)
    return captions


def _check_timing(captions: Iterable[Caption]) -> None:
    for caption in captions:
        problem = caption.timing_error()
        if problem:
            raise SerializationError(f"Inconsistent timing: {problem}")


def render_window(
    codec: SubtitleCodec,
    captions: Sequence[Caption],
    *,
    start_number: int = 1,
    head: bool = True,
    tail: bool = True,
) -> str:
    """
    渲染一个窗口；时间轴检查 + 统一异常包装。

    Raises:
        SerializationError: 时间轴不一致或语法层 build 失败
    """
    _check_timing(captions)
    try:
        return codec.render(captions, start_number=start_number, head=head, tail=tail)
    except SubkitError:
        raise
    except Exception as e:
        raise SerializationError(
            f"Failed to convert subtitles to {codec.name}: {e}"
        ) from e


def serialize(
    source: CaptionSource,
    fmt: str,
    *,
    include_meta: bool = False,
    fps: float = DEFAULT_SUB_FPS,
) -> bytes:
    """
    序列化为目标格式 bytes（文本格式带 BOM）。

    Raises:
        UnsupportedFormatError: 未知格式（不产出任何字节）
        SerializationError: build 失败
    """
    fmt = _normalize_format(fmt)
    content_type(fmt)
    codec = get_codec(fmt, fps=fps)
    captions = coerce_captions(source, include_meta=include_meta)
    body = render_window(codec, captions).encode("utf-8")
    return UTF8_BOM + body if uses_bom(fmt) else body


def serialize_download(
    source: CaptionSource,
    fmt: str,
    filename: str,
    *,
    brand_suffix: str = BRAND_SUFFIX,
    include_meta: bool = False,
    fps: float = DEFAULT_SUB_FPS,
) -> SerializedOutput:
    """下载路径：{bytes, contentType, filename, usesBOM}。"""
    data = serialize(source, fmt, include_meta=include_meta, fps=fps)
    return SerializedOutput(
        data=data,
        content_type=content_type(fmt),
        filename=output_filename(filename, fmt, brand_suffix=brand_suffix),
        uses_bom=uses_bom(fmt),
    )
