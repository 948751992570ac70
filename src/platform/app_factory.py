"""FastAPI app assembly shared by the service entrypoint and the test app."""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from src.platform.config.core_setting import settings
from src.platform.exception.exception_handlers import register_exception_handlers
from src.platform.observability.tracing import instrument_app
from src.service.grid.driving_adapter.http_controller import (
    admin_controller,
    grid_controller,
    hold_controller,
    payment_controller,
    submission_controller,
)


# (router, prefix); the tag is the last path segment
ROUTES: list[tuple[APIRouter, str]] = [
    (hold_controller.router, '/api/hold'),
    (grid_controller.router, '/api/grid'),
    (payment_controller.router, '/api/payment'),
    (submission_controller.router, '/api/submission'),
    (admin_controller.router, '/api/admin'),
]


def create_app(
    *,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[Any]],
    title_suffix: str = '',
) -> FastAPI:
    app = FastAPI(
        title=f'{settings.PROJECT_NAME}{title_suffix}',
        description='Reserve rectangles of a 100x100 grid, pay, upload, get moderated',
        version=settings.VERSION,
        lifespan=lifespan,
    )
    instrument_app(app)
    app.add_middleware(
        CORSMiddleware,  # type: ignore
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )
    register_exception_handlers(app)

    for router, prefix in ROUTES:
        app.include_router(router, prefix=prefix, tags=[prefix.rsplit('/', 1)[-1]])

    @app.get('/health')
    async def health_check() -> dict[str, str]:
        return {'status': 'healthy', 'service': settings.SERVICE_NAME}

    @app.get('/metrics')
    async def get_metrics() -> PlainTextResponse:
        """Prometheus exposition of the grid metrics"""
        return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app
