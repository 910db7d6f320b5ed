"""
Download API: 一次性下载 + 分块流式下载
"""
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Request
from fastapi.responses import Response, StreamingResponse
from pydantic import BaseModel

from subkit.errors import ValidationError
from subkit.pipeline.processors.serialize import output_filename, serialize_download
from subkit.pipeline.processors.stream import StreamingEmitter, aiter_chunks
from subkit.web.deps import get_config

router = APIRouter()
logger = logging.getLogger(__name__)


class DownloadRequest(BaseModel):
    subtitles: List[Dict[str, Any]] = []
    format: str = ""
    filename: str = ""


def _check_request(body: DownloadRequest) -> None:
    if not body.subtitles:
        raise ValidationError("No valid subtitles provided")
    if not body.format or not body.filename:
        raise ValidationError("Invalid request data")


@router.post("/download")
async def download_subtitle(request: Request, body: DownloadRequest) -> Response:
    """转换为目标格式并作为附件返回。"""
    _check_request(body)
    config = get_config(request)
    output = serialize_download(
        body.subtitles,
        body.format,
        body.filename,
        brand_suffix=config.brand_suffix,
        fps=config.sub_fps,
    )
    logger.info("download %s: %d bytes", output.filename, len(output.data))
    return Response(
        content=output.data,
        media_type=output.content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{output.filename}"',
            "Cache-Control": "no-store",
        },
    )


@router.post("/stream-download")
async def stream_download(request: Request, body: DownloadRequest) -> StreamingResponse:
    """
    分块流式下载（chunked transfer）。

    格式错误在响应开始之前报告；传输过程中的错误直接中止传输，不追加错误 chunk。
    """
    _check_request(body)
    config = get_config(request)
    emitter = StreamingEmitter(
        body.subtitles,
        body.format,
        window=config.stream_window,
        fps=config.sub_fps,
    )
    filename = output_filename(body.filename, body.format, brand_suffix=config.brand_suffix)
    logger.info("stream %s: %d captions in %d chunk(s)", filename, len(emitter.captions), emitter.total_chunks)
    return StreamingResponse(
        aiter_chunks(emitter, request.is_disconnected),
        media_type=emitter.content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache",
            "X-Content-Type-Options": "nosniff",
        },
    )
