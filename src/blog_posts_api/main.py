"""FastAPI application entrypoint."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from blog_posts_api.config import Settings
from blog_posts_api.metrics import store_errors_total
from blog_posts_api.posts import router as posts_router
from blog_posts_api.store import StoreUnavailableError
from blog_posts_api.store_factory import create_store
from blog_posts_api.telemetry import (
    add_trace_context,
    emit_to_otel_logs,
    init_telemetry,
    shutdown_telemetry,
)

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_trace_context,  # type: ignore[list-item]
        emit_to_otel_logs,  # type: ignore[list-item]
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer(),
    ],
)

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_telemetry()
    # run_server() presets settings; a bare `uvicorn blog_posts_api.main:app` reads the env
    settings: Settings = getattr(app.state, "settings", None) or Settings()
    app.state.settings = settings
    app.state.store = await create_store(settings)
    await log.ainfo("service started", store_backend=settings.store_backend)
    yield

    try:
        await app.state.store.aclose()
    finally:
        await log.ainfo("service stopped")
        shutdown_telemetry()


app = FastAPI(title="Blog Posts API", lifespan=lifespan)
app.include_router(posts_router)
FastAPIInstrumentor.instrument_app(app)


@app.exception_handler(StoreUnavailableError)
async def store_unavailable(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    store_errors_total.add(1, {"backend": exc.backend, "op": exc.op})
    await log.aerror("store_unavailable", backend=exc.backend, op=exc.op, path=request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Storage backend unavailable"})


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
