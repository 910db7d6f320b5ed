"""
AI Optimize API: 单次请求 ≤ 50 条，批次切分与顺序提交在服务端完成
"""
import logging
from typing import List

from fastapi import APIRouter, Request
from pydantic import BaseModel

from subkit.errors import ValidationError
from subkit.schema import CaptionItem
from subkit.web.deps import enforce_rate_limit, get_orchestrator

router = APIRouter()
logger = logging.getLogger(__name__)


class SubtitleItemIn(BaseModel):
    index: int
    content: str = ""


class OptimizeRequest(BaseModel):
    apiKey: str = ""
    subtitles: List[SubtitleItemIn] = []


@router.post("/aioptimize")
async def optimize_subtitles(request: Request, body: OptimizeRequest) -> dict:
    """
    Request body:
        {"apiKey": "...", "subtitles": [{"index": 1, "content": "..."}]}

    Returns:
        {"success": true, "optimized": [{"index": 1, "content": "..."}]}（按 index 升序）
    """
    if not body.apiKey.strip():
        raise ValidationError("API key is required")
    if not body.subtitles:
        raise ValidationError("Subtitles array is required and must not be empty")

    enforce_rate_limit(request)

    items = [CaptionItem(index=s.index, content=s.content) for s in body.subtitles]
    logger.info("optimize: %d subtitles", len(items))
    optimized = await get_orchestrator(request).optimize(body.apiKey, items)
    return {
        "success": True,
        "optimized": [item.to_dict() for item in optimized],
    }
