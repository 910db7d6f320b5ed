"""
Codec 基类：单一字幕语法的 parse / render

约定：
- parse(text) 返回原始条目 dict 列表，键为 wire 格式
  (type / start / end / duration / content / text)，缺失的键由 FormatParser 补默认值
- render(captions, start_number, head, tail) 渲染一个窗口
  head/tail 控制文档头尾，使独立渲染的窗口拼接后仍是一个合法文件
- 语法层不做清洗，清洗统一由 sanitize 负责
"""
from typing import Any, Dict, List, Sequence

from subkit.schema import Caption


class SubtitleCodec:
    name: str = ""

    def parse(self, text: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def render(
        self,
        captions: Sequence[Caption],
        *,
        start_number: int = 1,
        head: bool = True,
        tail: bool = True,
    ) -> str:
        raise NotImplementedError

    def build(self, captions: Sequence[Caption]) -> str:
        """渲染完整文档。"""
        return self.render(captions)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


def split_blocks(text: str) -> List[List[str]]:
    """按空行切分为块（每块是非空行列表），统一换行符。"""
    blocks: List[List[str]] = []
    current: List[str] = []
    for line in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if line.strip():
            current.append(line.rstrip())
        elif current:
            blocks.append(current)
            current = []
    if current:
        blocks.append(current)
    return blocks
