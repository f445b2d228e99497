# FILE: ehutano/utils/resp.py
from __future__ import annotations

import io
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, StreamingResponse

from ehutano.schemas.common import ApiErrorOut, ApiResponse


def ok(data: Any = None, status_code: int = 200) -> JSONResponse:
    payload = ApiResponse(status=True, data=data)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def err(msg: str, status_code: int = 400, code: str = "error",
        upstream_status: Optional[int] = None) -> JSONResponse:
    payload = ApiResponse(
        status=False,
        error=ApiErrorOut(msg=msg, code=code, upstream_status=upstream_status),
    )
    return JSONResponse(status_code=status_code,
                        content=jsonable_encoder(payload, exclude_none=True))


def pdf(pdf_bytes: bytes, filename: str) -> StreamingResponse:
    """Inline PDF, so the till can print straight from the browser."""
    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )
