"""
JSON 语法：caption 对象数组（与 HTTP wire 格式同构）
"""
import json
from typing import Any, Dict, List, Sequence

from subkit.schema import Caption
from .base import SubtitleCodec


class JsonCodec(SubtitleCodec):
    name = "json"

    def parse(self, text: str) -> List[Dict[str, Any]]:
        data = json.loads(text)
        if not isinstance(data, list):
            raise ValueError("JSON subtitles must be an array of caption objects")
        entries = []
        for item in data:
            if not isinstance(item, dict):
                raise ValueError("JSON subtitles must be an array of caption objects")
            entries.append({
                "type": item.get("type"),
                "start": item.get("start"),
                "end": item.get("end"),
                "duration": item.get("duration"),
                "content": item.get("content") or item.get("text") or "",
                "text": item.get("text") or "",
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
        items = []
        for number, c in enumerate(captions, start=start_number):
            data = c.to_dict()
            data["index"] = number
            items.append("  " + json.dumps(data, ensure_ascii=False))
        body = ",\n".join(items)
        if body and not head:
            body = ",\n" + body
        return ("[\n" if head else "") + body + ("\n]\n" if tail else "")
