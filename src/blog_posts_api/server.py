"""Start and stop the API under uvicorn, in-process or from the command line."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import structlog
import uvicorn
from fastapi import FastAPI

from blog_posts_api.config import Settings
from blog_posts_api.main import app as default_app
from blog_posts_api.store import PostStore
from blog_posts_api.telemetry import configure_stdlib_logging

log = structlog.get_logger()

_STARTUP_POLL_INTERVAL = 0.05  # seconds between readiness checks
_STARTUP_TIMEOUT = 10.0


# Wildcard binds accept loopback connections; clients cannot dial the wildcard itself
_LOOPBACK = {"0.0.0.0": "127.0.0.1", "::": "::1", "": "127.0.0.1"}


def connectable_url(host: str, port: int) -> str:
    """HTTP base URL a local client can reach for a server bound to ``host:port``."""
    host = _LOOPBACK.get(host, host)
    if ":" in host:
        host = f"[{host}]"
    return f"http://{host}:{port}"


@dataclass
class RunningServer:
    """Handle returned by :func:`run_server`."""

    server: uvicorn.Server
    task: asyncio.Task[None]
    app: FastAPI
    base_url: str

    @property
    def store(self) -> PostStore:
        """The store the running app serves from, shared with the caller."""
        store: PostStore = self.app.state.store
        return store


async def run_server(
    settings: Settings, *, app: FastAPI = default_app, port: int | None = None
) -> RunningServer:
    """Serve ``app`` on the current event loop and wait until it accepts connections.

    ``port=0`` binds an ephemeral port; the bound address is reported in
    ``base_url``. Raises RuntimeError if startup fails or times out.
    """
    app.state.settings = settings
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port if port is None else port,
        log_level=settings.log_level,
        lifespan="on",
    )
    server = uvicorn.Server(config)
    task = asyncio.create_task(server.serve())

    loop = asyncio.get_running_loop()
    deadline = loop.time() + _STARTUP_TIMEOUT
    while not server.started:
        if task.done():
            task.result()
            raise RuntimeError("server exited during startup")
        if loop.time() > deadline:
            server.should_exit = True
            await task
            raise RuntimeError(f"server did not start within {_STARTUP_TIMEOUT}s")
        await asyncio.sleep(_STARTUP_POLL_INTERVAL)

    host, bound_port = server.servers[0].sockets[0].getsockname()[:2]
    base_url = connectable_url(host, bound_port)
    await log.ainfo("server_started", url=base_url, store_backend=settings.store_backend)
    return RunningServer(server=server, task=task, app=app, base_url=base_url)


async def close_server(running: RunningServer) -> None:
    """Ask uvicorn to exit and wait for the lifespan shutdown to finish."""
    running.server.should_exit = True
    await running.task
    await log.ainfo("server_stopped", url=running.base_url)


def main() -> None:
    """Console entrypoint: serve the API with settings from the environment."""
    settings = Settings()
    configure_stdlib_logging(settings.log_level)
    default_app.state.settings = settings
    uvicorn.run(default_app, host=settings.host, port=settings.port, log_level=settings.log_level)
