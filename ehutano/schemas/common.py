# FILE: ehutano/schemas/common.py
from __future__ import annotations

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiErrorOut(BaseModel):
    """What the till shows: `msg` for the toast, `code` for branching."""

    msg: str
    code: str = "error"
    # set only when the pharmacy API answered with an error status
    upstream_status: Optional[int] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel):
    status: bool
    data: Optional[Any] = None
    error: Optional[ApiErrorOut] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)
