from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncEngine

from microtools.bootstrap import Components, build_components
from microtools.routers.bringlists import router as bringlists_router
from microtools.routers.expenses import router as expenses_router
from microtools.routers.files import router as files_router
from microtools.routers.health import router as health_router
from microtools.routers.metrics import router as metrics_router
from microtools.routers.notes import router as notes_router
from microtools.routers.polls import router as polls_router
from microtools.routers.secrets import router as secrets_router
from microtools.utils.logger import log_info
from microtools.utils.telemetry import init_otel
from microtools.db.base import async_engine
from microtools.middleware.error_handler import ErrorHandlerMiddleware, setup_exception_handlers
from microtools import config


def create_app(
    components: Optional[Components] = None,
    engine: Optional[AsyncEngine] = None,
    start_sweeper: Optional[bool] = None,
) -> FastAPI:
    """Build the API. Tests pass their own components and engine."""
    settings = config.settings
    components = components or build_components(settings)
    engine = engine if engine is not None else async_engine
    if start_sweeper is None:
        start_sweeper = settings.SWEEP_ENABLED

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_sweeper:
            components.sweeper.start()
        log_info(f"microtools API ready (sweeper {'on' if start_sweeper else 'off'})")
        try:
            yield
        finally:
            await components.sweeper.stop()
            await engine.dispose()

    app = FastAPI(
        title="Microtools API",
        description="Ephemeral notes, secrets, polls, expense shares, file shares and potluck lists",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.components = components

    # Error handler should be outermost to catch all errors
    app.add_middleware(ErrorHandlerMiddleware, debug=config.DEBUG)
    setup_exception_handlers(app)

    app.include_router(health_router)  # Health checks at root level
    app.include_router(metrics_router)
    app.include_router(notes_router, prefix="/api")
    app.include_router(secrets_router, prefix="/api")
    app.include_router(polls_router, prefix="/api")
    app.include_router(expenses_router, prefix="/api")
    app.include_router(files_router, prefix="/api")
    app.include_router(bringlists_router, prefix="/api")

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        """Return empty response for favicon to prevent 404 errors."""
        return Response(status_code=204)

    if settings.OTEL_ENABLED:
        init_otel(app=app, engine=engine)

    return app


app = create_app()