"""
OptimizationOrchestrator：顺序驱动外部优化调用，按 index 合并结果

状态机：
    planning → submitting(batch n) → merging → submitting(batch n+1) → ... → done
    任一状态 → failed

策略：
- 批次严格顺序提交，不并发（尊重外部限流，合并语义简单）
- fail-fast-and-discard：任一批次失败则整次优化失败，已合并的批次结果丢弃
- 全部成功后按 index 排序输出（合并 key 才是顺序的依据，不是到达顺序）
- 请求被取消时不再提交后续批次
- 不在本地持久化任何字幕内容
"""
import asyncio
import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from subkit.errors import (
    SubkitError,
    UpstreamAuthError,
    UpstreamError,
    UpstreamFormatError,
    ValidationError,
)
from subkit.models.gemini import build_optimize_prompt
from subkit.schema import CaptionDocument, CaptionItem, OptimizationBatch
from subkit.utils.logger import info, warning
from .batching import (
    DEFAULT_CHARS_PER_TOKEN,
    DEFAULT_MAX_ITEMS_PER_CALL,
    DEFAULT_MAX_TOKENS_PER_BATCH,
    check_item_count,
    plan,
)
from .sanitize import sanitize

_FENCED_ARRAY_RE = re.compile(r"```(?:json)?\s*(\[.*?\])\s*```", re.DOTALL)

_AUTH_MARKERS = ("api key", "api_key", "authentication", "unauthorized", "permission denied")


class TextOptimizer(Protocol):
    def generate(self, prompt: str) -> Awaitable[str]:
        ...


OptimizerFactory = Callable[[str], TextOptimizer]


class RunState(str, Enum):
    PLANNING = "planning"
    SUBMITTING = "submitting"
    MERGING = "merging"
    DONE = "done"
    FAILED = "failed"


_ALLOWED = {
    RunState.PLANNING: {RunState.SUBMITTING, RunState.DONE, RunState.FAILED},
    RunState.SUBMITTING: {RunState.MERGING, RunState.FAILED},
    RunState.MERGING: {RunState.SUBMITTING, RunState.DONE, RunState.FAILED},
    RunState.DONE: set(),
    RunState.FAILED: set(),
}


@dataclass
class OptimizationRun:
    """一次优化调用的状态记录。"""
    state: RunState = RunState.PLANNING
    batch_number: int = 0
    total_batches: int = 0
    item_count: int = 0
    history: List[Tuple[RunState, int]] = field(default_factory=list)
    error: Optional[SubkitError] = None

    def transition(self, state: RunState, batch_number: Optional[int] = None) -> None:
        if state not in _ALLOWED[self.state]:
            raise RuntimeError(f"invalid transition {self.state.value} -> {state.value}")
        self.state = state
        if batch_number is not None:
            self.batch_number = batch_number
        self.history.append((state, self.batch_number))

    def fail(self, error: Optional[SubkitError] = None) -> None:
        if self.state in (RunState.DONE, RunState.FAILED):
            return
        self.error = error
        self.transition(RunState.FAILED)


class OptimizationResult:
    """index → 优化后 content，随批次完成增量组装。"""

    def __init__(self) -> None:
        self._by_index: Dict[int, str] = {}

    def __len__(self) -> int:
        return len(self._by_index)

    def merge(self, items: Sequence[CaptionItem]) -> None:
        for item in items:
            if item.index in self._by_index:
                raise UpstreamFormatError(f"Duplicate index {item.index} in optimizer response")
            self._by_index[item.index] = item.content

    def ordered(self) -> List[CaptionItem]:
        return [CaptionItem(index=i, content=self._by_index[i]) for i in sorted(self._by_index)]


def _extract_json_text(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        match = _FENCED_ARRAY_RE.search(text)
        if match:
            return match.group(1)
    return text


def _coerce_index(value) -> Optional[int]:
    # bool 是 int 的子类，不算数字
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def parse_optimizer_response(text: str, expected_indices: Sequence[int]) -> List[CaptionItem]:
    """
    解析并校验优化服务的输出。

    - 去掉 ``` 代码块包裹，取其中第一个 JSON 数组
    - 必须是数组，每个元素有数字 index 与字符串 content
    - index 必须恰好覆盖本批提交的 index（无重复、无遗漏、无多余）
    - content 过 sanitize

    Raises:
        UpstreamFormatError: 任一校验失败（整批拒收，不接受部分结果）
    """
    try:
        data = json.loads(_extract_json_text(text))
    except ValueError as e:
        raise UpstreamFormatError(f"Failed to optimize subtitles: invalid JSON in response ({e})") from e

    if not isinstance(data, list):
        raise UpstreamFormatError("Failed to optimize subtitles: Response is not an array")

    items: List[CaptionItem] = []
    seen = set()
    for element in data:
        index = _coerce_index(element.get("index")) if isinstance(element, dict) else None
        content = element.get("content") if isinstance(element, dict) else None
        if index is None or not isinstance(content, str):
            raise UpstreamFormatError("Failed to optimize subtitles: Invalid item format in response")
        if index in seen:
            raise UpstreamFormatError(f"Failed to optimize subtitles: Duplicate index {index} in response")
        seen.add(index)
        items.append(CaptionItem(index=index, content=sanitize(content)))

    expected = set(expected_indices)
    if seen != expected:
        missing = sorted(expected - seen)
        unexpected = sorted(seen - expected)
        raise UpstreamFormatError(
            "Failed to optimize subtitles: response indices do not match request "
            f"(missing={missing[:10]}, unexpected={unexpected[:10]})"
        )
    return items


def classify_upstream_error(exc: Exception) -> UpstreamError:
    """鉴权类失败（401/403 或报错文案含 api key/authentication）→ UpstreamAuthError。"""
    message = str(exc)
    lowered = message.lower()
    code = getattr(exc, "code", None) or getattr(exc, "status_code", None)
    if code in (401, 403) or any(marker in lowered for marker in _AUTH_MARKERS):
        return UpstreamAuthError("Invalid API key. Please check your Gemini API key and try again.")
    return UpstreamError(f"Failed to optimize subtitles: {message or type(exc).__name__}")


def filter_valid_items(items: Sequence[CaptionItem]) -> List[CaptionItem]:
    """去掉空白 content 的条目。"""
    return [item for item in items if item.content and item.content.strip()]


def apply_optimized(document: CaptionDocument, items: Sequence[CaptionItem]) -> int:
    """
    把优化结果写回文档（只改 content/text，不动时间轴）。

    Returns:
        实际更新的条目数
    """
    by_index = {c.index: c for c in document.captions}
    updated = 0
    for item in items:
        caption = by_index.get(item.index)
        if caption is None:
            continue
        caption.content = sanitize(item.content)
        caption.text = caption.content
        updated += 1
    return updated


class OptimizationOrchestrator:
    """
    Args:
        optimizer_factory: api_key → TextOptimizer（生产环境为 Gemini 客户端）
        max_tokens_per_batch: 单批 token 预算
        chars_per_token: 字符/token 估算比例
        max_items_per_call: 单次请求条目上限
    """

    def __init__(
        self,
        optimizer_factory: OptimizerFactory,
        *,
        max_tokens_per_batch: int = DEFAULT_MAX_TOKENS_PER_BATCH,
        chars_per_token: int = DEFAULT_CHARS_PER_TOKEN,
        max_items_per_call: int = DEFAULT_MAX_ITEMS_PER_CALL,
    ) -> None:
        self.optimizer_factory = optimizer_factory
        self.max_tokens_per_batch = max_tokens_per_batch
        self.chars_per_token = chars_per_token
        self.max_items_per_call = max_items_per_call

    async def optimize(self, api_key: str, items: Sequence[CaptionItem]) -> List[CaptionItem]:
        """
        单次请求路径：条目数上限 → 过滤空白 → 分批 → 顺序提交 → 按 index 排序输出。

        Raises:
            BatchSizeError: 条目数超过 max_items_per_call
            ValidationError: 缺少 api_key / 没有有效条目 / index 重复
            UpstreamAuthError / UpstreamFormatError / UpstreamError
        """
        check_item_count(len(items), self.max_items_per_call)
        valid = filter_valid_items(items)
        if not valid:
            raise ValidationError("No valid subtitles to optimize")
        optimized, _ = await self.run(api_key, valid)
        return optimized

    async def optimize_document(self, api_key: str, document: CaptionDocument) -> OptimizationRun:
        """
        整文档路径（CLI）：按单次调用上限切批，全部成功后写回文档。

        失败时文档保持原样。
        """
        valid = filter_valid_items(document.items())
        if not valid:
            raise ValidationError("No valid subtitles to optimize")
        optimized, run = await self.run(api_key, valid, max_items=self.max_items_per_call)
        apply_optimized(document, optimized)
        return run

    async def run(
        self,
        api_key: str,
        items: Sequence[CaptionItem],
        *,
        max_items: Optional[int] = None,
    ) -> Tuple[List[CaptionItem], OptimizationRun]:
        """驱动状态机；返回 (按 index 排序的结果, 运行记录)。"""
        if not api_key:
            raise ValidationError("API key is required")
        indices = [item.index for item in items]
        if len(set(indices)) != len(indices):
            raise ValidationError("Subtitle indices must be unique")

        run = OptimizationRun(item_count=len(items))
        try:
            optimizer = self._create_optimizer(api_key)
            batches = plan(
                sorted(items, key=lambda item: item.index),
                self.max_tokens_per_batch,
                self.chars_per_token,
                max_items=max_items,
            )
            run.total_batches = len(batches)
            info(f"Optimizing {len(items)} subtitles in {len(batches)} batch(es)")

            result = OptimizationResult()
            for batch in batches:
                run.transition(RunState.SUBMITTING, batch.batch_number)
                response_text = await self._submit(optimizer, batch)
                run.transition(RunState.MERGING)
                result.merge(parse_optimizer_response(response_text, [i.index for i in batch.items]))

            run.transition(RunState.DONE)
            return result.ordered(), run
        except asyncio.CancelledError:
            warning(f"Optimization cancelled at batch {run.batch_number}/{run.total_batches}")
            run.fail()
            raise
        except SubkitError as e:
            warning(f"Optimization failed at batch {run.batch_number}/{run.total_batches}: {e.kind}")
            run.fail(e)
            raise

    def _create_optimizer(self, api_key: str) -> TextOptimizer:
        try:
            return self.optimizer_factory(api_key)
        except Exception as e:
            raise classify_upstream_error(e) from e

    async def _submit(self, optimizer: TextOptimizer, batch: OptimizationBatch) -> str:
        info(
            f"Batch {batch.batch_number}/{batch.total_batches}: "
            f"{len(batch.items)} subtitles, index {batch.first_index}-{batch.last_index}"
        )
        prompt = build_optimize_prompt(batch.items)
        try:
            return await optimizer.generate(prompt)
        except Exception as e:
            raise classify_upstream_error(e) from e
