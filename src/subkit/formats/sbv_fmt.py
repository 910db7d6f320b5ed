"""
SBV（YouTube）语法

块格式：
    0:00:01.000,0:00:03.500
    text
"""
import re
from typing import Any, Dict, List, Sequence

from subkit.schema import Caption
from .base import SubtitleCodec, split_blocks

_TIMING_RE = re.compile(
    r"^(\d+):(\d{2}):(\d{2})\.(\d{3}),(\d+):(\d{2}):(\d{2})\.(\d{3})$"
)


def _to_ms(h: str, m: str, s: str, ms: str) -> int:
    return ((int(h) * 60 + int(m)) * 60 + int(s)) * 1000 + int(ms)


def format_sbv_time(ms: int) -> str:
    ms = int(ms)
    hours, rem = divmod(ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, millis = divmod(rem, 1000)
    return f"{hours}:{minutes:02d}:{seconds:02d}.{millis:03d}"


class SbvCodec(SubtitleCodec):
    name = "sbv"

    def parse(self, text: str) -> List[Dict[str, Any]]:
        entries = []
        for block in split_blocks(text):
            m = _TIMING_RE.match(block[0].strip())
            if not m:
                raise ValueError(f"invalid SBV timing line: {block[0][:40]!r}")
            g = m.groups()
            content = "\n".join(block[1:])
            entries.append({
                "type": "caption",
                "start": _to_ms(*g[:4]),
                "end": _to_ms(*g[4:]),
                "content": content,
                "text": content,
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
            f"{format_sbv_time(c.start_ms)},{format_sbv_time(c.end_ms)}\n{c.content}\n"
            for c in captions
        ]
        body = "\n".join(blocks)
        if body and not head:
            body = "\n" + body
        return body
