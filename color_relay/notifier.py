"""Transient user-facing status messages."""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import List

from .config import Config

log = logging.getLogger(__name__)

KINDS = ("info", "ok", "error")


@dataclass(frozen=True)
class Notification:
    """One status message; `kind` is info, ok or error."""

    text: str
    kind: str = "info"
    created: float = field(default_factory=time.time)


class Notifier:
    """Newest-first message list whose entries expire after `ttl` seconds.

    `notify()` must be called on the event loop thread; `messages()` may be
    called from any thread.
    """

    def __init__(self, ttl: float = Config.NOTIFY_TTL_SEC) -> None:
        self.ttl = ttl
        self._lock = threading.Lock()
        self._messages: List[Notification] = []

    def notify(self, text: str, kind: str = "info") -> Notification:
        if kind not in KINDS:
            raise ValueError(f"Unknown notification kind {kind!r}")
        note = Notification(text, kind)
        with self._lock:
            self._messages.insert(0, note)
        asyncio.get_running_loop().call_later(self.ttl, self._expire, note)
        if kind == "error":
            log.error("%s", text)
        else:
            log.info("%s", text)
        return note

    def _expire(self, note: Notification) -> None:
        with self._lock:
            # Identity match: equal texts posted together expire independently
            for i, m in enumerate(self._messages):
                if m is note:
                    del self._messages[i]
                    break

    def messages(self) -> List[Notification]:
        """Return a snapshot of live messages, newest first."""
        with self._lock:
            return list(self._messages)
