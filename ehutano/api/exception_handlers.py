# FILE: ehutano/api/exception_handlers.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ehutano.core.errors import DispensingError, PharmacyApiError
from ehutano.utils.resp import err

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DispensingError)
    async def dispensing_error_handler(request: Request, exc: DispensingError) -> JSONResponse:
        upstream = None
        if isinstance(exc, PharmacyApiError):
            logger.error("%s %s: upstream %s: %s", request.method, request.url.path,
                         exc.upstream_status or "unreachable", exc.msg)
            upstream = exc.upstream_status or None
        return err(msg=exc.msg, status_code=exc.status_code, code=exc.code,
                   upstream_status=upstream)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # exc.detail can be str/dict/list
        msg = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return err(msg=msg, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = next(iter(exc.errors()), None)
        if first:
            where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
            msg = f"{where}: {first.get('msg')}" if where else str(first.get("msg"))
        else:
            msg = "Validation error"
        return err(msg=msg, status_code=422, code="validation_error")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return err(msg="Internal server error", status_code=500)
