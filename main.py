"""
Task Manager API — application entry point.
"""

from __future__ import annotations

import asyncio
import logging
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import register_middleware
from api.routes import router as task_router
from auth.cleanup import guest_sweep_loop, sweep_expired_guests
from auth.routes import router as auth_router
from config.settings import config
from database.helpers import create_tables
from database.session import async_session_factory, engine

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("sqlalchemy.engine", "asyncio", "httpx", "httpcore"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Task Manager API",
        version="1.0.0",
        description="Personal task management with accounts and guest sessions.",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)

    # Routes
    app.include_router(auth_router, prefix="/api/v1/auth")
    app.include_router(task_router, prefix="/api/v1")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.on_event("startup")
    async def on_startup():
        await create_tables(engine)

        expired = await sweep_expired_guests(async_session_factory)
        if expired:
            logger.info("Cleaned up %d expired guest accounts from previous run", expired)

        if config.guest_cleanup_interval_seconds > 0:
            app.state.guest_sweep = asyncio.create_task(
                guest_sweep_loop(async_session_factory, config.guest_cleanup_interval_seconds)
            )

        logger.info("Application ready to accept requests.")

    @app.on_event("shutdown")
    async def on_shutdown():
        sweep = getattr(app.state, "guest_sweep", None)
        if sweep is not None:
            sweep.cancel()
            try:
                await sweep
            except asyncio.CancelledError:
                pass
        await engine.dispose()

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
