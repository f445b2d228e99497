# ehutano/core/auth.py
from __future__ import annotations

import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class AuthContext:
    """
    Source of the bearer token carried on every upstream call.

    The console never logs in by itself; whoever owns the session hands it
    a token and is told (via on_unauthorized) when the API rejects it.
    """

    def get_token(self) -> Optional[str]:
        raise NotImplementedError

    def on_unauthorized(self) -> None:
        raise NotImplementedError


class StaticTokenAuth(AuthContext):
    def __init__(self, token: Optional[str] = None):
        self._token = token or None
        self._lock = threading.Lock()

    def get_token(self) -> Optional[str]:
        with self._lock:
            return self._token

    def set_token(self, token: Optional[str]) -> None:
        with self._lock:
            self._token = token or None

    def on_unauthorized(self) -> None:
        logger.warning("Pharmacy API rejected the bearer token; clearing it")
        self.set_token(None)


def extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None
