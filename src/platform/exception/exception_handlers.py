"""
Error bodies of the HTTP API

Every error answers `{"detail": ...}`; a rejected claim adds `blocking_cells`.
Malformed input (bad rectangles, bad cell ids, schema violations) is a 400.
"""

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.platform.exception.exceptions import CustomBaseError
from src.platform.logging.loguru_io import Logger


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CustomBaseError)
    async def grid_error(request: Request, exc: CustomBaseError) -> JSONResponse:
        if exc.status_code >= 500:
            Logger.base.error(f'⚠️ [HTTP] {request.url.path}: {exc.message}')
        return JSONResponse(
            status_code=exc.status_code,
            content={'detail': exc.message, **exc.extra_content()},
        )

    # Parsers outside the request schemas
    @app.exception_handler(ValueError)
    async def bad_value(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={'detail': str(exc)})

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={'detail': jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unexpected(request: Request, exc: Exception) -> JSONResponse:
        Logger.base.exception(f'💥 [HTTP] Unhandled {type(exc).__name__} on {request.url.path}')
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={'detail': 'Internal server error'},
        )
