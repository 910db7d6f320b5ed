"""
RateLimiter：按 client id 的固定窗口准入控制

状态由显式注入的 store 持有（测试可传入独立实例，多进程部署可替换为分布式 store）。
所有请求共享同一个 store，读改写在 store.lock 下完成。

准入规则：
- 无记录，或窗口已过期（now - window_start >= window）→ 重置为 {count: 1, window_start: now}，允许
- count < max_per_window → count + 1，允许
- 否则拒绝

后台 sweep 定期清理过期记录，避免临时客户端导致内存增长。
"""
import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from subkit.errors import RateLimitError
from subkit.utils.logger import debug

DEFAULT_WINDOW_SECONDS = 60
DEFAULT_MAX_PER_WINDOW = 10


@dataclass
class RateLimitEntry:
    count: int
    window_start: float


class InMemoryRateLimitStore:
    """进程内 store：dict + threading.Lock。"""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self._entries: Dict[str, RateLimitEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[RateLimitEntry]:
        return self._entries.get(key)

    def set(self, key: str, entry: RateLimitEntry) -> None:
        self._entries[key] = entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._entries)


class RateLimiter:
    """
    Args:
        store: 共享 store（None = 新建进程内 store）
        window_seconds: 窗口长度
        max_per_window: 窗口内最大请求数
        clock: 单调时钟（测试可注入）
    """

    def __init__(
        self,
        store: Optional[InMemoryRateLimitStore] = None,
        *,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        max_per_window: int = DEFAULT_MAX_PER_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store if store is not None else InMemoryRateLimitStore()
        self.window_seconds = window_seconds
        self.max_per_window = max_per_window
        self.clock = clock

    def admit(self, client_id: str) -> bool:
        now = self.clock()
        with self.store.lock:
            entry = self.store.get(client_id)
            if entry is None or now - entry.window_start >= self.window_seconds:
                self.store.set(client_id, RateLimitEntry(count=1, window_start=now))
                return True
            if entry.count < self.max_per_window:
                entry.count += 1
                return True
            return False

    def check(self, client_id: str) -> None:
        """
        Raises:
            RateLimitError: 超出窗口配额
        """
        if not self.admit(client_id):
            raise RateLimitError("Too many requests. Please try again later.")

    def sweep(self) -> int:
        """清理过期记录，返回清理数量。"""
        now = self.clock()
        removed = 0
        with self.store.lock:
            for key in self.store.keys():
                entry = self.store.get(key)
                if entry is not None and now - entry.window_start >= self.window_seconds:
                    self.store.delete(key)
                    removed += 1
        if removed:
            debug(f"rate limiter sweep: removed {removed} expired client(s)")
        return removed

    async def run_sweeper(self, interval: Optional[float] = None) -> None:
        """后台清理任务（由 web 应用 lifespan 启动/取消）。"""
        interval = interval or self.window_seconds
        while True:
            await asyncio.sleep(interval)
            self.sweep()
