"""
Caption Model: 单次请求内的字幕唯一事实源（SSOT）

设计原则：
- 时间单位统一用 int 毫秒（start_ms / end_ms / duration_ms）
- index 在 parse 时重排为 1..N，re-serialize 时不再重排
- content: 清洗后的显示文本；text: 去掉所有标记的纯文本
- kind="meta" 的条目（样式块、注释）默认不参与 optimize / serialize
- 生命周期 = 一次 request/response，不跨请求持久化

Wire 格式（HTTP / json 字幕格式共用）：
    {"type": "caption", "index": 1, "start": 0, "end": 1000,
     "duration": 1000, "content": "...", "text": "..."}
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Literal, Optional

CaptionKind = Literal["caption", "meta"]


@dataclass
class Caption:
    """
    一条字幕。

    字段：
    - index: 文档内唯一的正整数，决定规范顺序
    - start_ms / end_ms: 非负毫秒，end_ms >= start_ms
    - duration_ms: 冗余存储（部分格式直接需要），缺省时由 end - start 推导
    - content: 清洗后的显示文本
    - text: 纯文本
    - kind: caption | meta
    """
    index: int
    start_ms: int = 0
    end_ms: int = 0
    content: str = ""
    text: str = ""
    kind: CaptionKind = "caption"
    duration_ms: Optional[int] = None

    def __post_init__(self):
        if self.duration_ms is None:
            self.duration_ms = self.end_ms - self.start_ms

    @property
    def is_caption(self) -> bool:
        return self.kind == "caption"

    def timing_error(self) -> Optional[str]:
        """时间轴不一致时返回描述，否则 None。"""
        if self.start_ms < 0:
            return f"caption {self.index}: negative start ({self.start_ms}ms)"
        if self.end_ms < self.start_ms:
            return f"caption {self.index}: end ({self.end_ms}ms) before start ({self.start_ms}ms)"
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "index": self.index,
            "start": self.start_ms,
            "end": self.end_ms,
            "duration": self.duration_ms,
            "content": self.content,
            "text": self.text,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], *, index: Optional[int] = None) -> "Caption":
        """从 wire dict 构建（缺失字段取默认值，content 回退到 text）。"""
        content = data.get("content") or data.get("text") or ""
        start = int(data.get("start") or 0)
        end = int(data.get("end") or 0)
        duration = data.get("duration")
        return cls(
            index=int(index if index is not None else data.get("index") or 0),
            start_ms=start,
            end_ms=end,
            content=content,
            text=data.get("text") or content,
            kind="meta" if data.get("type") == "meta" else "caption",
            duration_ms=int(duration) if duration is not None else None,
        )


@dataclass
class CaptionItem:
    """AI 优化的最小单元：只有 index + content。"""
    index: int
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"index": self.index, "content": self.content}


@dataclass
class CaptionDocument:
    """
    有序、index 唯一的字幕序列。

    不变量（validate() 检查）：
    - index 严格递增
    - index 从 1 开始连续
    """
    captions: List[Caption] = field(default_factory=list)
    source_format: Optional[str] = None

    def __len__(self) -> int:
        return len(self.captions)

    def __iter__(self) -> Iterator[Caption]:
        return iter(self.captions)

    def validate(self) -> None:
        """检查 index 不变量，违反时抛 ValueError。"""
        for expected, caption in enumerate(self.captions, start=1):
            if caption.index != expected:
                raise ValueError(
                    f"caption index {caption.index} at position {expected}; "
                    f"indices must be a dense run starting at 1"
                )

    def caption_entries(self, *, include_meta: bool = False) -> List[Caption]:
        """默认只返回 kind == "caption" 的条目。"""
        if include_meta:
            return list(self.captions)
        return [c for c in self.captions if c.is_caption]

    def items(self) -> List[CaptionItem]:
        """optimize 路径的输入（只含 caption 条目）。"""
        return [CaptionItem(index=c.index, content=c.content) for c in self.caption_entries()]

    def get(self, index: int) -> Optional[Caption]:
        for caption in self.captions:
            if caption.index == index:
                return caption
        return None

    def to_dict_list(self) -> List[Dict[str, Any]]:
        return [c.to_dict() for c in self.captions]


@dataclass
class OptimizationBatch:
    """
    一次外部调用提交的批次。

    不变量：
    - 所有批次的 items 恰好划分提交的字幕集合（无重叠、无遗漏）
    - 每个批次内按 index 排序
    - 单条字幕不会被拆到两个批次
    """
    batch_number: int  # 1-indexed
    total_batches: int
    items: List[CaptionItem]

    @property
    def first_index(self) -> int:
        return self.items[0].index

    @property
    def last_index(self) -> int:
        return self.items[-1].index
