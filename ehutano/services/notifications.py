# FILE: ehutano/services/notifications.py
from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Deque, List

from ehutano.schemas.dispensing import Toast, ToastVariant

logger = logging.getLogger(__name__)


class ToastLog:
    """
    Messages for the till screen. Every toast is logged as well; the
    front-end drains them with each response.
    """

    def __init__(self, limit: int = 50):
        self._items: Deque[Toast] = deque(maxlen=limit)
        self._lock = threading.Lock()

    def push(self, title: str, description: str = "",
             variant: ToastVariant = ToastVariant.DEFAULT) -> Toast:
        toast = Toast(
            title=title,
            description=description,
            variant=variant,
            created_at=datetime.now(timezone.utc),
        )
        if variant == ToastVariant.DESTRUCTIVE:
            logger.warning("%s: %s", title, description)
        else:
            logger.info("%s: %s", title, description)
        with self._lock:
            self._items.append(toast)
        return toast

    def info(self, title: str, description: str = "") -> Toast:
        return self.push(title, description, ToastVariant.DEFAULT)

    def error(self, title: str, description: str = "") -> Toast:
        return self.push(title, description, ToastVariant.DESTRUCTIVE)

    def peek(self) -> List[Toast]:
        with self._lock:
            return list(self._items)

    def drain(self) -> List[Toast]:
        with self._lock:
            out = list(self._items)
            self._items.clear()
        return out
