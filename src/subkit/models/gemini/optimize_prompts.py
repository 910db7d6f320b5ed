"""
优化提示词：模板从 YAML 加载（prompts/optimize_subtitles.yaml）
"""
import json
from typing import Sequence

from subkit.prompts import load_prompt
from subkit.schema import CaptionItem

# 超过该条数时在 prompt 中加入批次范围说明
CONTEXT_SUMMARY_THRESHOLD = 10


def build_context_summary(items: Sequence[CaptionItem]) -> str:
    if len(items) <= CONTEXT_SUMMARY_THRESHOLD:
        return ""
    return load_prompt(
        "optimize_subtitles.context_summary",
        count=str(len(items)),
        first_index=str(items[0].index),
        last_index=str(items[-1].index),
    ).text


def build_optimize_prompt(items: Sequence[CaptionItem]) -> str:
    """
    构建单批优化 prompt。

    Args:
        items: 本批条目（已按 index 排序）

    Returns:
        prompt 文本（Gemini contents）
    """
    subtitles_json = json.dumps([item.to_dict() for item in items], ensure_ascii=False, indent=2)
    return load_prompt(
        "optimize_subtitles",
        context_summary=build_context_summary(items),
        subtitles_json=subtitles_json,
    ).text
