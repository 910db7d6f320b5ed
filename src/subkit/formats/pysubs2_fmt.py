"""
SubStation（ass / ssa）与 MicroDVD（sub）语法：parse / render 都交给 pysubs2

分窗口渲染时，非首窗口去掉 pysubs2 写出的文档头：
- ass/ssa：[Events] 段的 Format: 行及之前的全部内容
- microdvd：首行帧率声明（pysubs2 写 {0}{0}<fps>，常见文件也写 {1}{1}<fps>）
"""
import re
from typing import Any, Dict, List, Sequence

import pysubs2

from subkit.schema import Caption
from .base import SubtitleCodec

_FPS_DECLARATION_RE = re.compile(r"\A\{[01]\}\{[01]\}(\d+(?:\.\d+)?)[ \t]*(?:\r?\n|\Z)")


class Pysubs2Codec(SubtitleCodec):
    """
    Args:
        name: 对外格式名（ass / ssa / sub）
        pysubs2_format: pysubs2 内部格式名（ass / ssa / microdvd）
        fps: 帧率（仅 microdvd 使用）
    """

    def __init__(self, name: str, pysubs2_format: str, *, fps: float | None = None):
        self.name = name
        self.pysubs2_format = pysubs2_format
        self.fps = fps

    def _format_kwargs(self) -> Dict[str, Any]:
        if self.pysubs2_format == "microdvd":
            return {"fps": self.fps}
        return {}

    def parse(self, text: str) -> List[Dict[str, Any]]:
        kwargs = self._format_kwargs()
        if self.pysubs2_format == "microdvd":
            # 帧率声明行优先于默认帧率，且不作为字幕条目
            declaration = _FPS_DECLARATION_RE.match(text.lstrip())
            if declaration:
                kwargs["fps"] = float(declaration.group(1))
                text = text.lstrip()[declaration.end():]
        subs = pysubs2.SSAFile.from_string(text, format_=self.pysubs2_format, **kwargs)
        return [
            {
                "type": "meta" if ev.is_comment else "caption",
                "start": ev.start,
                "end": ev.end,
                "content": ev.plaintext,
                "text": ev.plaintext,
            }
            for ev in subs
        ]

    def render(
        self,
        captions: Sequence[Caption],
        *,
        start_number: int = 1,
        head: bool = True,
        tail: bool = True,
    ) -> str:
        subs = pysubs2.SSAFile()
        for c in captions:
            event = pysubs2.SSAEvent(start=c.start_ms, end=c.end_ms)
            event.plaintext = c.content
            if not c.is_caption:
                event.type = "Comment"
            subs.append(event)
        text = subs.to_string(self.pysubs2_format, **self._format_kwargs())
        if head:
            return text
        return self._strip_head(text)

    def _strip_head(self, text: str) -> str:
        if self.pysubs2_format == "microdvd":
            return _FPS_DECLARATION_RE.sub("", text, count=1)
        events_at = text.find("[Events]")
        if events_at < 0:
            return text
        format_at = text.find("\nFormat:", events_at)
        if format_at < 0:
            return text
        line_end = text.find("\n", format_at + 1)
        return "" if line_end < 0 else text[line_end + 1:]
