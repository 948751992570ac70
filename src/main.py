"""
Production FastAPI Application

Grid reservation API, state feed and the background hold reaper.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from src.platform.app_factory import create_app
from src.platform.config.core_setting import settings
from src.platform.config.di import cleanup, container, setup
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import configure_tracing, instrument_engine
from src.service.grid.driving_adapter.background.hold_reaper import HoldReaper


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown."""
    Logger.base.info('🚀 [Grid Engine] Starting up...')

    tracer_provider = configure_tracing()

    # Wire dependency injection for all modules
    container.wire(modules=WIRE_MODULES)
    setup()
    Logger.base.info('🔌 [Grid Engine] Dependency injection wired')

    # Initialize database
    database = container.database()
    instrument_engine(database.engine)
    await database.create_tables()
    Logger.base.info('🗄️  [Grid Engine] Database ready + instrumented')

    async with anyio.create_task_group() as tg:
        if settings.HOLD_REAPER_ENABLED:
            reaper = HoldReaper(
                use_case=container.reap_expired_holds_use_case(),
                interval_seconds=settings.HOLD_REAPER_INTERVAL_SECONDS,
            )
            await reaper.start(task_group=tg)

        Logger.base.info('✅ [Grid Engine] Ready to serve requests')

        yield

        Logger.base.info('🛑 [Grid Engine] Shutting down...')
        tg.cancel_scope.cancel()

    await cleanup()
    Logger.base.info('🗄️  [Grid Engine] Database engine disposed')

    # Flush spans still queued for export
    tracer_provider.shutdown()

    # Unwire DI
    container.unwire()

    Logger.base.info('👋 [Grid Engine] Shutdown complete')


# Create FastAPI app using shared factory
app = create_app(lifespan=lifespan)


@app.get('/')
async def root() -> RedirectResponse:
    """Root endpoint - redirect to docs."""
    return RedirectResponse(url='/docs')
