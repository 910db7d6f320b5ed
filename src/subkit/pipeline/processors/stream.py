"""
StreamingEmitter：按固定窗口分块输出序列化结果（有界内存）

调度模型（单线程协作式）：
- 每个窗口独立渲染为一个 chunk，yield 给消费方后生产方才继续
- 消费方关闭（generator.close()）后在下一个 yield 点停止，不再计算/缓存后续 chunk
- 渲染出错时以 SerializationError 中止，不静默截断
- 生成器耗尽 = 流结束；生成器只能消费一次

分帧：
- 首个 chunk 带 BOM（文本格式）与文档头，最后一个 chunk 带文档尾
- 编号跨窗口连续（第二个窗口从 window+1 开始）
"""
import math
from typing import AsyncIterator, Awaitable, Callable, Iterator, Optional

from subkit.errors import SerializationError, SubkitError
from subkit.formats import DEFAULT_SUB_FPS, get_codec
from subkit.utils.logger import debug, warning
from .serialize import UTF8_BOM, CaptionSource, coerce_captions, content_type, render_window, uses_bom

DEFAULT_WINDOW = 100


class StreamingEmitter:
    """
    Args:
        source: CaptionDocument / Caption 列表 / wire dict 列表
        fmt: 目标格式
        window: 每个 chunk 的字幕条数
        include_meta: 是否输出 meta 条目
        renderer: 窗口渲染函数（默认 serialize.render_window）
    """

    def __init__(
        self,
        source: CaptionSource,
        fmt: str,
        *,
        window: int = DEFAULT_WINDOW,
        include_meta: bool = False,
        fps: float = DEFAULT_SUB_FPS,
        renderer: Callable[..., str] = render_window,
    ) -> None:
        if window <= 0:
            raise ValueError("window must be positive")
        # 未知格式在产出任何字节之前失败
        self.content_type = content_type(fmt)
        self.format = fmt.lower().lstrip(".")
        self.codec = get_codec(self.format, fps=fps)
        self.captions = coerce_captions(source, include_meta=include_meta)
        self.window = window
        self.renderer = renderer
        self.state = "pending"
        self.chunks_emitted = 0

    @property
    def total_chunks(self) -> int:
        # 空文档也输出一个 chunk（文档头/尾）
        return max(1, math.ceil(len(self.captions) / self.window))

    def emit(self) -> Iterator[bytes]:
        if self.state != "pending":
            raise RuntimeError("stream can only be consumed once")
        self.state = "streaming"
        return self._generate()

    def _generate(self) -> Iterator[bytes]:
        total = self.total_chunks
        try:
            for position in range(total):
                offset = position * self.window
                text = self.renderer(
                    self.codec,
                    self.captions[offset:offset + self.window],
                    start_number=offset + 1,
                    head=position == 0,
                    tail=position == total - 1,
                )
                chunk = text.encode("utf-8")
                if position == 0 and uses_bom(self.format):
                    chunk = UTF8_BOM + chunk
                self.chunks_emitted += 1
                yield chunk
        except GeneratorExit:
            self.state = "aborted"
            debug(f"stream aborted after {self.chunks_emitted}/{total} chunks")
            raise
        except SubkitError:
            self.state = "failed"
            raise
        except Exception as e:
            self.state = "failed"
            raise SerializationError(f"Stream processing failed: {e}") from e
        self.state = "completed"


async def aiter_chunks(
    emitter: StreamingEmitter,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[bytes]:
    """
    HTTP 层的异步包装：计算每个 chunk 之前检查连接是否已断开。
    """
    chunks = emitter.emit()
    try:
        while True:
            if is_disconnected is not None and await is_disconnected():
                warning(f"client disconnected after {emitter.chunks_emitted} chunk(s)")
                break
            try:
                chunk = next(chunks)
            except StopIteration:
                break
            yield chunk
    finally:
        chunks.close()
        if emitter.state == "streaming":
            # 首个 chunk 之前断开：生成器从未启动
            emitter.state = "aborted"
