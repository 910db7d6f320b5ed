"""
FastAPI server for subtitle conversion + AI optimization

启动方式：subkit serve [--host 0.0.0.0] [--port 8000]
"""
import asyncio
import contextlib
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from subkit.config import ServiceConfig
from subkit.errors import SubkitError, ValidationError
from subkit.models.gemini import create_gemini_optimizer
from subkit.pipeline.processors.optimize import OptimizationOrchestrator, OptimizerFactory
from subkit.pipeline.processors.rate_limit import RateLimiter
from subkit.web.api.download import router as download_router
from subkit.web.api.formats import router as formats_router
from subkit.web.api.optimize import router as optimize_router
from subkit.web.api.upload import router as upload_router

logger = logging.getLogger(__name__)


async def _subkit_error_handler(request: Request, exc: SubkitError) -> JSONResponse:
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    error = ValidationError("Invalid request data: " + "; ".join(problems))
    return JSONResponse(error.to_dict(), status_code=error.status_code)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        {"success": False, "error": "Internal server error", "kind": "InternalError"},
        status_code=500,
    )


def create_app(
    config: Optional[ServiceConfig] = None,
    *,
    rate_limiter: Optional[RateLimiter] = None,
    optimizer_factory: Optional[OptimizerFactory] = None,
) -> FastAPI:
    """
    创建 FastAPI 应用。

    Args:
        config: 服务配置（None = 默认 + 环境变量）
        rate_limiter: 共享限流器（None = 按 config 新建进程内限流器）
        optimizer_factory: api_key → TextOptimizer（None = Gemini）
    """
    config = config or ServiceConfig()
    rate_limiter = rate_limiter or RateLimiter(
        window_seconds=config.rate_limit_window_s,
        max_per_window=config.rate_limit_max_requests,
    )
    if optimizer_factory is None:
        def optimizer_factory(api_key: str):
            return create_gemini_optimizer(api_key, model=config.gemini_model)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        sweeper = asyncio.create_task(rate_limiter.run_sweeper(config.rate_limit_sweep_interval_s))
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper

    app = FastAPI(
        title="Subtitle Converter & Optimizer",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.rate_limiter = rate_limiter
    app.state.orchestrator = OptimizationOrchestrator(
        optimizer_factory,
        max_tokens_per_batch=config.max_tokens_per_batch,
        chars_per_token=config.chars_per_token,
        max_items_per_call=config.max_items_per_call,
    )

    app.add_exception_handler(SubkitError, _subkit_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(formats_router, prefix="/api")
    app.include_router(upload_router, prefix="/api")
    app.include_router(download_router, prefix="/api")
    app.include_router(optimize_router, prefix="/api")

    return app
