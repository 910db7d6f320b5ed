"""
路由共享的依赖：配置、限流、client id
"""
from fastapi import Request

from subkit.config import ServiceConfig
from subkit.pipeline.processors.optimize import OptimizationOrchestrator
from subkit.pipeline.processors.rate_limit import RateLimiter


def get_config(request: Request) -> ServiceConfig:
    return request.app.state.config


def get_orchestrator(request: Request) -> OptimizationOrchestrator:
    return request.app.state.orchestrator


def client_id(request: Request) -> str:
    """X-Forwarded-For 第一个地址 → 对端地址 → "unknown"。"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def enforce_rate_limit(request: Request) -> None:
    """
    Raises:
        RateLimitError: 超出限流窗口
    """
    limiter: RateLimiter = request.app.state.rate_limiter
    limiter.check(client_id(request))
