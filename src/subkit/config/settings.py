import os
from pathlib import Path
from dataclasses import dataclass, field


def load_env_file(env_path: str | Path | None = None) -> None:
    """
    加载项目级 .env 文件（不覆盖已存在的环境变量）。

    如果 env_path 为 None，从当前文件向上查找第一个包含 .env 的目录。

    Args:
        env_path: .env 文件路径（None = 自动查找）
    """
    from dotenv import load_dotenv

    if env_path is None:
        current = Path(__file__).resolve()
        for parent in current.parents:
            env_file = parent / ".env"
            if env_file.exists():
                load_dotenv(env_file, override=False)
                return
    else:
        env_path = Path(env_path)
        if env_path.exists():
            load_dotenv(env_path, override=False)


def get_gemini_key() -> str | None:
    """
    仅从系统环境变量读取。
    优先使用官方 GEMINI_API_KEY，回退到 GEMINI_KEY。
    """
    return os.getenv("GEMINI_API_KEY") or os.getenv("GEMINI_KEY")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


@dataclass
class ServiceConfig:
    # ── 上传 ──
    max_file_size: int | None = None  # 默认 50 MiB
    sub_fps: float = 25.0  # MicroDVD 帧率

    # ── 限流 ──
    rate_limit_window_s: int | None = None  # 默认 60s
    rate_limit_max_requests: int | None = None  # 默认 10
    rate_limit_sweep_interval_s: int = 60

    # ── AI 优化 ──
    gemini_model: str | None = None
    max_tokens_per_batch: int | None = None  # 默认 75,000 ≈ 225,000 字符
    chars_per_token: int = 3  # 保守估算
    max_items_per_call: int | None = None  # 单次请求条目上限，默认 50

    # ── 下载 / 流式 ──
    stream_window: int = 100
    brand_suffix: str = "subtitletranslatorai.com"

    # ── Web ──
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    def __post_init__(self):
        # 显式传入 > SUBKIT_* 环境变量 > 默认值
        if self.gemini_model is None:
            self.gemini_model = os.getenv("SUBKIT_GEMINI_MODEL") or "gemini-2.0-flash"
        if self.max_file_size is None:
            self.max_file_size = _env_int("SUBKIT_MAX_FILE_SIZE", 50 * 1024 * 1024)
        if self.rate_limit_window_s is None:
            self.rate_limit_window_s = _env_int("SUBKIT_RATE_LIMIT_WINDOW", 60)
        if self.rate_limit_max_requests is None:
            self.rate_limit_max_requests = _env_int("SUBKIT_RATE_LIMIT_MAX", 10)
        if self.max_tokens_per_batch is None:
            self.max_tokens_per_batch = _env_int("SUBKIT_MAX_TOKENS_PER_BATCH", 75_000)
        if self.max_items_per_call is None:
            self.max_items_per_call = _env_int("SUBKIT_MAX_ITEMS_PER_CALL", 50)
