"""
LRC（歌词）语法

- [mm:ss.xx]text 为一行字幕；一行的结束时间 = 下一行的开始时间，最后一行时长为 0
- [ar:Artist] 之类的标签行作为 meta 条目
"""
import re
from typing import Any, Dict, List, Sequence

from subkit.schema import Caption
from .base import SubtitleCodec

_LINE_RE = re.compile(r"^\[(\d+):(\d{2})(?:[.:](\d{1,3}))?\](.*)$")
_TAG_RE = re.compile(r"^\[([a-zA-Z#]+):(.*)\]$")


def _fraction_to_ms(frac: str | None) -> int:
    if not frac:
        return 0
    # 1 位 = 1/10 秒，2 位 = 1/100 秒，3 位 = 毫秒
    return int(frac) * (10 ** (3 - len(frac)))


def format_lrc_time(ms: int) -> str:
    ms = int(ms)
    minutes, rem = divmod(ms, 60_000)
    seconds, millis = divmod(rem, 1000)
    return f"{minutes:02d}:{seconds:02d}.{millis // 10:02d}"


class LrcCodec(SubtitleCodec):
    name = "lrc"

    def parse(self, text: str) -> List[Dict[str, Any]]:
        entries: List[Dict[str, Any]] = []
        captions: List[Dict[str, Any]] = []
        for raw in text.replace("\r\n", "\n").split("\n"):
            line = raw.strip()
            if not line:
                continue
            m = _LINE_RE.match(line)
            if m:
                minutes, seconds, frac, content = m.groups()
                start = (int(minutes) * 60 + int(seconds)) * 1000 + _fraction_to_ms(frac)
                entry = {"type": "caption", "start": start, "content": content, "text": content}
                captions.append(entry)
                entries.append(entry)
                continue
            tag = _TAG_RE.match(line)
            if tag:
                entries.append({"type": "meta", "content": line[1:-1], "text": line[1:-1]})
                continue
            raise ValueError(f"invalid LRC line: {line[:40]!r}")

        for current, following in zip(captions, captions[1:]):
            current["end"] = following["start"]
        if captions:
            captions[-1]["end"] = captions[-1]["start"]
        return entries

    def render(
        self,
        captions: Sequence[Caption],
        *,
        start_number: int = 1,
        head: bool = True,
        tail: bool = True,
    ) -> str:
        lines = []
        for c in captions:
            if not c.is_caption:
                lines.append(f"[{c.content}]\n")
                continue
            # LRC 一行一条，多行内容合并为一行
            content = " ".join(part.strip() for part in c.content.splitlines() if part.strip())
            lines.append(f"[{format_lrc_time(c.start_ms)}]{content}\n")
        return "".join(lines)
