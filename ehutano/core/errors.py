# ehutano/core/errors.py
from __future__ import annotations


class DispensingError(Exception):
    """Base for workflow failures; `msg` is safe to show at the till."""

    status_code = 400
    code = "error"

    def __init__(self, msg: str):
        super().__init__(msg)
        self.msg = msg


class WorkflowValidationError(DispensingError):
    status_code = 400
    code = "validation_error"


class NotFoundError(DispensingError):
    status_code = 404
    code = "not_found"


class StaleEncounterError(DispensingError):
    status_code = 409
    code = "stale_encounter"


class PharmacyApiError(DispensingError):
    """
    Upstream pharmacy API failure.

    upstream_status is the HTTP status returned by the API, or 0 when the
    request never got a response (connection refused, timeout, bad JSON).
    """

    status_code = 502
    code = "upstream_error"

    def __init__(self, msg: str, upstream_status: int = 0):
        super().__init__(msg)
        self.upstream_status = upstream_status
        if upstream_status == 401:
            self.status_code = 401
