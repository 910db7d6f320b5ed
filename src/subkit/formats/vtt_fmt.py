"""
WebVTT 语法：解析交给 pysubs2，渲染手工拼块（WEBVTT 头 + 编号 cue）
"""
from typing import Any, Dict, List, Sequence

import pysubs2

from subkit.schema import Caption
from .base import SubtitleCodec

HEADER = "WEBVTT\n"


def format_vtt_time(ms: int) -> str:
    """毫秒 → HH:MM:SS.mmm"""
    ms = int(ms)
    hours, rem = divmod(ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


class VttCodec(SubtitleCodec):
    name = "vtt"

    def parse(self, text: str) -> List[Dict[str, Any]]:
        subs = pysubs2.SSAFile.from_string(text, format_="vtt")
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
        blocks = [
            f"{number}\n{format_vtt_time(c.start_ms)} --> {format_vtt_time(c.end_ms)}\n{c.content}\n"
            for number, c in enumerate(captions, start=start_number)
        ]
        body = "\n".join(blocks)
        if head:
            return HEADER + ("\n" + body if body else "")
        return "\n" + body if body else ""
