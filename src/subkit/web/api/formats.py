"""
Formats API: 支持的格式表 + 健康检查
"""
from fastapi import APIRouter

from subkit import __version__
from subkit.formats import BOM_FORMATS, CONTENT_TYPES, SUPPORTED_FORMATS

router = APIRouter()


@router.get("/formats")
async def list_formats() -> dict:
    return {
        "formats": [
            {"name": fmt, "content_type": CONTENT_TYPES[fmt], "bom": fmt in BOM_FORMATS}
            for fmt in SUPPORTED_FORMATS
        ]
    }


@router.get("/health")
async def health() -> dict:
    return {"status": "ok", "version": __version__}
