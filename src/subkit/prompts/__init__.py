"""
Prompt 模板加载器

职责：
- 从 YAML 文件加载 prompt 模板
- 支持 $variable 变量替换（string.Template）
- 支持嵌套 section 访问（如 "optimize_subtitles.context_summary"）

用法：
    from subkit.prompts import load_prompt

    p = load_prompt("optimize_subtitles",
        context_summary="",
        subtitles_json="[...]",
    )
    print(p.text)    # 渲染后的单段 prompt（Gemini contents）
"""
import string
from pathlib import Path
from typing import Any, Dict

import yaml

_PROMPTS_DIR = Path(__file__).parent
_cache: Dict[str, dict] = {}


def _load_yaml(name: str) -> dict:
    """加载并缓存 YAML 文件。"""
    if name not in _cache:
        yaml_path = _PROMPTS_DIR / f"{name}.yaml"
        with open(yaml_path, "r", encoding="utf-8") as f:
            _cache[name] = yaml.safe_load(f) or {}
    return _cache[name]


def _substitute(text: str, **kwargs: Any) -> str:
    """使用 string.Template 进行变量替换（$variable）。"""
    if not text:
        return ""
    return string.Template(text).safe_substitute(**kwargs)


class RenderedPrompt:
    """渲染后的 prompt（单段 text，作为 Gemini contents）。"""

    __slots__ = ("text",)

    def __init__(self, text: str = ""):
        self.text = text.strip()

    def __repr__(self) -> str:
        return f"RenderedPrompt(text={len(self.text)} chars)"


def load_prompt(name: str, **kwargs: Any) -> RenderedPrompt:
    """
    加载并渲染 prompt 模板。

    Args:
        name: 模板名，格式 "file_name" 或 "file_name.section.subsection"
        **kwargs: 模板变量（替换 $variable）

    Returns:
        RenderedPrompt（.text 为渲染结果）
    """
    parts = name.split(".", 1)
    file_name = parts[0]
    section_path = parts[1] if len(parts) > 1 else None

    data = _load_yaml(file_name)

    if section_path:
        for key in section_path.split("."):
            if isinstance(data, dict) and key in data:
                data = data[key]
            else:
                raise KeyError(
                    f"Section '{section_path}' not found in template '{file_name}'"
                )

    if not isinstance(data, dict):
        # section 直接是字符串，作为 text 返回
        return RenderedPrompt(text=_substitute(str(data), **kwargs))

    return RenderedPrompt(text=_substitute(data.get("prompt", ""), **kwargs))


def clear_cache() -> None:
    """清除缓存（用于测试或热重载）。"""
    _cache.clear()
