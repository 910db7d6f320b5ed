"""
SAMI（.smi）语法

每条字幕对应两个 SYNC：开始时刻显示文本，结束时刻显示 &nbsp; 清屏。
"""
import html
import re
from typing import Any, Dict, List, Sequence

from subkit.schema import Caption
from .base import SubtitleCodec

_SYNC_RE = re.compile(r"<sync\s[^>]*?start\s*=\s*[\"']?(\d+)[^>]*>", re.IGNORECASE)
_BODY_END_RE = re.compile(r"</body\s*>", re.IGNORECASE)
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_MARKUP_RE = re.compile(r"<[^>]*>")

HEAD = (
    "<SAMI>\n"
    "<HEAD>\n"
    "<TITLE></TITLE>\n"
    "<STYLE TYPE=\"text/css\">\n"
    "<!--\n"
    "P { font-family: Arial; font-weight: normal; color: white; "
    "background-color: black; text-align: center; }\n"
    ".ENCC { name: English; lang: en-US; }\n"
    "-->\n"
    "</STYLE>\n"
    "</HEAD>\n"
    "<BODY>\n"
)
TAIL = "</BODY>\n</SAMI>\n"


def _sync_text(fragment: str) -> str:
    fragment = _BR_RE.sub("\n", fragment)
    fragment = _MARKUP_RE.sub("", fragment)
    lines = [html.unescape(line).strip() for line in fragment.split("\n")]
    return "\n".join(line for line in lines if line)


class SmiCodec(SubtitleCodec):
    name = "smi"

    def parse(self, text: str) -> List[Dict[str, Any]]:
        body_end = _BODY_END_RE.search(text)
        limit = body_end.start() if body_end else len(text)
        syncs = list(_SYNC_RE.finditer(text, 0, limit))
        if not syncs:
            raise ValueError("no SYNC blocks found")

        entries: List[Dict[str, Any]] = []
        for i, m in enumerate(syncs):
            frag_end = syncs[i + 1].start() if i + 1 < len(syncs) else limit
            content = _sync_text(text[m.end():frag_end])
            start = int(m.group(1))
            if entries and "end" not in entries[-1]:
                entries[-1]["end"] = start
            if content:
                entries.append({"type": "caption", "start": start, "content": content, "text": content})
        if entries and "end" not in entries[-1]:
            entries[-1]["end"] = entries[-1]["start"]
        return entries

    def render(
        self,
        captions: Sequence[Caption],
        *,
        start_number: int = 1,
        head: bool = True,
        tail: bool = True,
    ) -> str:
        parts = [HEAD] if head else []
        for c in captions:
            content = html.escape(c.content, quote=False).replace("\n", "<br>")
            parts.append(f"<SYNC Start={c.start_ms}><P Class=ENCC>{content}</P></SYNC>\n")
            parts.append(f"<SYNC Start={c.end_ms}><P Class=ENCC>&nbsp;</P></SYNC>\n")
        if tail:
            parts.append(TAIL)
        return "".join(parts)
