"""
Read-only HTTP status surface for a running bot.

Endpoints:
- GET /, /health  -> JSON health snapshot
- GET /status     -> HTML status page
"""
from __future__ import annotations

import asyncio
import contextlib
import html
import logging
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI
from fastapi.responses import HTMLResponse

if TYPE_CHECKING:
    from .runner import BotEngine


logger = logging.getLogger("botcop.autonomy")

_STATUS_PAGE = """<!DOCTYPE html>
<html>
<head>
    <title>Bot Cop Status</title>
    <style>
        body {{ font-family: Arial; max-width: 600px; margin: 50px auto; padding: 20px; }}
        h1 {{ color: #333; }}
        .stat {{ background: #f0f0f0; padding: 10px; margin: 10px 0; border-radius: 5px; }}
        .healthy {{ color: green; }}
        .unhealthy {{ color: red; }}
    </style>
</head>
<body>
    <h1>Bot Cop Status</h1>
    <div class="stat">Status: <strong class="{health_class}">{health_label}</strong> ({state})</div>
    <div class="stat">Uptime: <strong>{uptime} seconds</strong></div>
    <div class="stat">Total Actions: <strong>{total}</strong></div>
    <div class="stat">Successes: <strong>{successes}</strong></div>
    <div class="stat">Errors: <strong>{errors}</strong></div>
    <div class="stat">Success Rate: <strong>{success_rate}</strong></div>
    <p><em>Bot sends messages and comments every {interval} minutes</em></p>
</body>
</html>
"""


def create_status_app(engine: "BotEngine") -> FastAPI:
    app = FastAPI(title="Bot Cop Status", docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/")
    @app.get("/health")
    async def health():
        body = engine.snapshot()
        body["message"] = "Bot Cop is running!" if body["status"] == "running" else f"Bot Cop is {body['status']}"
        return body

    @app.get("/status", response_class=HTMLResponse)
    async def status_page():
        snap = engine.snapshot()
        stats = snap["stats"]
        healthy = snap["healthy"]
        return _STATUS_PAGE.format(
            health_class="healthy" if healthy else "unhealthy",
            health_label="Healthy" if healthy else "Unhealthy",
            state=html.escape(snap["status"]),
            uptime=int(snap["uptime"]),
            total=stats["total"],
            successes=stats["successes"],
            errors=stats["errors"],
            success_rate=html.escape(stats["successRate"]),
            interval=f"{engine.cfg.interval_minutes:g}",
        )

    return app


class _EmbeddedServer(uvicorn.Server):
    # The engine owns SIGINT/SIGTERM; uvicorn must not replace those handlers.
    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class StatusServer:
    def __init__(self, server: uvicorn.Server, task: asyncio.Task):
        self.server = server
        self.task = task

    async def shutdown(self) -> None:
        self.server.should_exit = True
        await asyncio.gather(self.task, return_exceptions=True)


async def start_status_server(engine: "BotEngine", port: int, host: str = "0.0.0.0") -> StatusServer:
    config = uvicorn.Config(
        create_status_app(engine),
        host=host,
        port=port,
        log_level="warning",
        lifespan="off",
    )
    server = _EmbeddedServer(config)

    async def _serve() -> None:
        try:
            await server.serve()
        except SystemExit:
            # uvicorn exits when the port cannot be bound; the bot keeps running without it.
            logger.error("Status server failed to start port=%s", port)

    task = asyncio.create_task(_serve())
    logger.info("HTTP status server starting port=%s health=/health status=/status", port)
    return StatusServer(server, task)
