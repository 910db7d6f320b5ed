"""测试共用的样例数据与假优化器"""
import json
from typing import Callable, List, Optional

import pytest

from subkit.schema import CaptionItem

SAMPLE_SRT = (
    "1\n"
    "00:00:01,000 --> 00:00:02,500\n"
    "<i>Hello</i> there\n"
    "\n"
    "2\n"
    "00:00:03,000 --> 00:00:04,000\n"
    "General Kenobi\n"
    "\n"
    "3\n"
    "00:00:05,000 --> 00:00:06,200\n"
    "You are a bold one\n"
)


class FakeOptimizer:
    """按顺序返回预置响应，记录每次收到的 prompt。"""

    def __init__(self, responses: List) -> None:
        self.responses = list(responses)
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class EchoOptimizer:
    """从 prompt 中取出提交的条目，content 经 transform 后原样返回。"""

    def __init__(self, transform: Optional[Callable[[str], str]] = None) -> None:
        self.transform = transform or str.upper
        self.calls = 0

    async def generate(self, prompt: str) -> str:
        self.calls += 1
        submitted = json.loads(prompt.rsplit("Subtitles to optimize:", 1)[1])
        return json.dumps([
            {"index": item["index"], "content": self.transform(item["content"])}
            for item in submitted
        ])


class UpstreamFailure(Exception):
    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


def make_items(*contents: str, start: int = 1) -> List[CaptionItem]:
    return [CaptionItem(index=i, content=c) for i, c in enumerate(contents, start=start)]


@pytest.fixture
def sample_srt_bytes() -> bytes:
    return SAMPLE_SRT.encode("utf-8")
