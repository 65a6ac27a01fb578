# FILE: rxprint/api/exception_handlers.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from rxprint.core.errors import (
    NotFoundError,
    OverflowWarning,
    ParseError,
    PersistenceError,
    ValidationError,
)
from rxprint.utils.resp import err

logger = logging.getLogger(__name__)


def _loc(parts) -> str:
    return ".".join(str(p) for p in parts if p != "body")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # exc.detail can be str/dict/list
        msg = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return err(msg=msg, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [f"{_loc(e.get('loc', ()))}: {e.get('msg')}" for e in exc.errors()]
        return err(msg="Validation error", status_code=422, data={"errors": errors})

    @app.exception_handler(ValidationError)
    async def rx_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return err(msg=exc.message, status_code=422, data={"errors": exc.errors})

    @app.exception_handler(ParseError)
    async def parse_error_handler(request: Request, exc: ParseError) -> JSONResponse:
        return err(msg=str(exc), status_code=422)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return err(msg=str(exc), status_code=404)

    @app.exception_handler(PersistenceError)
    async def persistence_handler(request: Request, exc: PersistenceError) -> JSONResponse:
        return err(msg=str(exc), status_code=503)

    @app.exception_handler(OverflowWarning)
    async def overflow_handler(request: Request, exc: OverflowWarning) -> JSONResponse:
        return err(
            msg=str(exc),
            status_code=409,
            data={"placed": exc.placed, "total": exc.total, "omitted": exc.omitted},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return err(msg="Internal server error", status_code=500)
