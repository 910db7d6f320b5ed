"""
TokenBatchPlanner：把字幕切成保序、受 token 预算约束的批次

算法：
- 单条成本 = ceil(utf8 字节数 / chars_per_token)，chars_per_token 固定为 3（保守）
- 按输入顺序累加，下一条会超预算时关闭当前批次
- 单条自身超预算也独立成批（字幕是原子的，不丢弃、不拆分）
- 可选 max_items：批次条目数达到上限时同样关闭（整文档优化时与单次调用上限对齐）

保证：批次恰好划分输入、批内与批间保序、对同一输入与预算结果确定。
"""
import math
from typing import List, Optional, Sequence

from subkit.errors import BatchSizeError
from subkit.schema import CaptionItem, OptimizationBatch

DEFAULT_MAX_TOKENS_PER_BATCH = 75_000
DEFAULT_CHARS_PER_TOKEN = 3
DEFAULT_MAX_ITEMS_PER_CALL = 50


def estimate_tokens(content: str, chars_per_token: int = DEFAULT_CHARS_PER_TOKEN) -> int:
    """保守估算：按 UTF-8 字节数计（多字节字符算多个字符）。"""
    return math.ceil(len(content.encode("utf-8")) / chars_per_token)


def check_item_count(count: int, max_items: int = DEFAULT_MAX_ITEMS_PER_CALL) -> None:
    """
    单次调用条目数上限（独立于 token 预算，保护外部调用的延迟）。

    Raises:
        BatchSizeError: 超过上限
    """
    if count > max_items:
        raise BatchSizeError(
            f"Too many subtitles in single request. Maximum {max_items} subtitles per request."
        )


def plan(
    items: Sequence[CaptionItem],
    max_tokens_per_batch: int = DEFAULT_MAX_TOKENS_PER_BATCH,
    chars_per_token: int = DEFAULT_CHARS_PER_TOKEN,
    *,
    max_items: Optional[int] = None,
) -> List[OptimizationBatch]:
    """
    切分批次。

    Args:
        items: 待优化条目（顺序即提交顺序）
        max_tokens_per_batch: 单批 token 预算
        chars_per_token: 字符/token 比例
        max_items: 单批条目数上限（None = 不限）

    Returns:
        OptimizationBatch 列表（batch_number 从 1 开始，total_batches = 批次数）
    """
    if max_tokens_per_batch <= 0:
        raise ValueError("max_tokens_per_batch must be positive")
    if chars_per_token <= 0:
        raise ValueError("chars_per_token must be positive")

    groups: List[List[CaptionItem]] = []
    current: List[CaptionItem] = []
    current_tokens = 0

    for item in items:
        cost = estimate_tokens(item.content, chars_per_token)
        over_budget = current_tokens + cost > max_tokens_per_batch
        full = max_items is not None and len(current) >= max_items
        if current and (over_budget or full):
            groups.append(current)
            current = []
            current_tokens = 0
        current.append(item)
        current_tokens += cost

    if current:
        groups.append(current)

    total = len(groups)
    return [
        OptimizationBatch(batch_number=number, total_batches=total, items=group)
        for number, group in enumerate(groups, start=1)
    ]
