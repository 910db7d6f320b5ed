"""
SRT 语法：解析用 srt 库，渲染用 format_time 手工拼块

块格式：
    {number}\n{start} --> {end}\n{content}\n
块之间空一行，number 按输出顺序从 start_number 连续编号。
"""
from datetime import timedelta
from typing import Any, Dict, List, Sequence

import srt

from subkit.schema import Caption
from .base import SubtitleCodec

_MS = timedelta(milliseconds=1)


def format_time(ms: int) -> str:
    """
    毫秒 → SRT 时间码 HH:MM:SS,mmm。

    小时至少两位，超过 99 不截断（100 小时 → "100:00:00,000"）。
    """
    ms = int(ms)
    hours = ms // 3_600_000
    minutes = (ms % 3_600_000) // 60_000
    seconds = (ms % 60_000) // 1000
    millis = ms % 1000
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"


class SrtCodec(SubtitleCodec):
    name = "srt"

    def parse(self, text: str) -> List[Dict[str, Any]]:
        entries = []
        for sub in srt.parse(text):
            entries.append({
                "type": "caption",
                "start": sub.start // _MS,
                "end": sub.end // _MS,
                "content": sub.content,
                "text": sub.content,
            })
        return entries

    def render(
        self,
        captions: Sequence[Caption],
        *,
        start_number: int = 1,
        head: bool = True,
        tail: bool = True,
    ) -> str:
        blocks = [
            f"{number}\n{format_time(c.start_ms)} --> {format_time(c.end_ms)}\n{c.content}\n"
            for number, c in enumerate(captions, start=start_number)
        ]
        body = "\n".join(blocks)
        # 非首窗口：与上一窗口之间补空行
        if body and not head:
            body = "\n" + body
        return body
