"""
Upload API: multipart 上传 → 解析 → CaptionDocument（wire dict 列表）
"""
import logging

from fastapi import APIRouter, Request
from starlette.datastructures import UploadFile

from subkit.errors import ValidationError
from subkit.pipeline.processors.parse import parse
from subkit.web.deps import enforce_rate_limit, get_config

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/upload")
async def upload_subtitle(request: Request) -> dict:
    """
    上传字幕文件（multipart/form-data，字段名 file）。

    Returns:
        {"success": true, "data": [caption...], "filename": "...", "format": "srt"}
    """
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" not in content_type:
        raise ValidationError("Invalid content type. Must be multipart/form-data", status_code=415)

    enforce_rate_limit(request)
    config = get_config(request)

    form = await request.form()
    file = form.get("file")
    if not isinstance(file, UploadFile):
        raise ValidationError("No file provided")

    try:
        filename = file.filename or ""
        # 读到上限 + 1 字节即可判断是否超限
        raw = await file.read(config.max_file_size + 1)
        document = parse(raw, filename, max_file_size=config.max_file_size, fps=config.sub_fps)
    finally:
        await file.close()

    logger.info("upload %s: %d captions (%s)", filename, len(document), document.source_format)
    return {
        "success": True,
        "data": document.to_dict_list(),
        "filename": filename,
        "format": document.source_format,
    }
