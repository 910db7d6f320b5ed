"""
Gemini 文本优化客户端 + prompt 构建
"""
from .client import GeminiTextOptimizer, create_gemini_optimizer
from .optimize_prompts import CONTEXT_SUMMARY_THRESHOLD, build_optimize_prompt

__all__ = [
    "CONTEXT_SUMMARY_THRESHOLD",
    "GeminiTextOptimizer",
    "build_optimize_prompt",
    "create_gemini_optimizer",
]
