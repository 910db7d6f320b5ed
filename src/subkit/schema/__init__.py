"""
Schema 模块：字幕数据模型
"""
from .caption import (
    Caption,
    CaptionDocument,
    CaptionItem,
    CaptionKind,
    OptimizationBatch,
)

__all__ = [
    "Caption",
    "CaptionDocument",
    "CaptionItem",
    "CaptionKind",
    "OptimizationBatch",
]
