# ehutano/api/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request

from ehutano.core.auth import StaticTokenAuth, extract_bearer
from ehutano.core.errors import WorkflowValidationError
from ehutano.services.dispensing_workflow import DispensingWorkflow


# =========================================================
# WORKFLOW
# =========================================================
def get_workflow(
        request: Request,
        authorization: Optional[str] = Header(None),
) -> DispensingWorkflow:
    """
    The till's single workflow instance. A bearer token sent by the
    front-end replaces the one used for upstream calls.
    """
    token = extract_bearer(authorization)
    auth = getattr(request.app.state, "auth", None)
    if token and isinstance(auth, StaticTokenAuth):
        auth.set_token(token)
    return request.app.state.workflow


def _parse_version(if_match: Optional[str]) -> Optional[int]:
    if not if_match:
        return None
    raw = if_match.strip()
    if raw.startswith("W/"):
        raw = raw[2:]
    raw = raw.strip('"')
    try:
        return int(raw)
    except ValueError:
        raise WorkflowValidationError(f"If-Match must be an encounter version, got {if_match!r}")


def mutable_workflow(
        wf: DispensingWorkflow = Depends(get_workflow),
        if_match: Optional[str] = Header(None),
) -> DispensingWorkflow:
    """get_workflow plus the optimistic version check for mutating routes."""
    wf.check_version(_parse_version(if_match))
    return wf
