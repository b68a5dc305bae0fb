"""Background event-loop service hosting the color relay pipeline."""

import asyncio
import functools
import logging
import threading
from typing import Optional

import numpy as np

from .app import ColorRelayApp
from .config import Config
from .preferences import PreferenceStore

log = logging.getLogger(__name__)

# Upper bound for a dashboard request waiting on the loop
CALL_TIMEOUT_SEC = 30.0


class ColorRelayService:
    """Runs `ColorRelayApp` on an asyncio loop in a daemon thread.

    Public methods are safe to call from Flask request threads; they hand the
    work to the loop and wait for its result.
    """

    def __init__(self, app: Optional[ColorRelayApp] = None) -> None:
        self.config = Config
        self.app = app or ColorRelayApp(PreferenceStore(self.config.PREFS_PATH))
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()

    # Public API
    def start(self) -> None:
        """Start the loop thread and kick off camera/sampler startup."""
        self._thread = threading.Thread(target=self._run, name="color-relay", daemon=True)
        self._thread.start()
        self._ready.wait()
        future = asyncio.run_coroutine_threadsafe(self.app.init(), self._loop)
        future.add_done_callback(functools.partial(self._log_failure, "Startup"))

    def stop(self) -> None:
        """Cancel periodic tasks, release the camera and stop the loop."""
        if self._loop is None:
            return
        try:
            self._call(self._shutdown())
        except Exception:
            log.exception("Shutdown failed")
        self._loop.call_soon_threadsafe(self._loop.stop)
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2)
        self._loop = None

    def select_camera(self, device_id: str) -> bool:
        return self._call(self.app.select_camera(device_id))

    def send_now(self) -> None:
        """Queue a one-shot send; its outcome arrives as a notification."""
        if self._loop is None:
            raise RuntimeError("Service is not running")
        future = asyncio.run_coroutine_threadsafe(self.app.send_now(), self._loop)
        future.add_done_callback(functools.partial(self._log_failure, "Send"))

    def set_auto(self, enabled: bool) -> None:
        self._call(self._sync(self.app.set_auto, enabled))

    def set_visibility(self, visible: bool) -> None:
        self._call(self.app.on_visibility_change(visible))

    def snapshot(self) -> dict:
        return self._call(self._sync(self.app.snapshot))

    def get_latest_frame(self) -> Optional[np.ndarray]:
        """Return a copy of the live frame, or None when no stream is active."""
        stream = self.app.state.stream
        if stream is None:
            return None
        return stream.latest_frame()

    # Internal
    def _run(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        self._ready.set()
        try:
            self._loop.run_forever()
        finally:
            self._loop.close()

    def _call(self, coro):
        if self._loop is None:
            coro.close()
            raise RuntimeError("Service is not running")
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result(timeout=CALL_TIMEOUT_SEC)

    @staticmethod
    def _log_failure(what: str, future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            log.error("%s failed", what, exc_info=exc)

    @staticmethod
    async def _sync(fn, *args):
        return fn(*args)

    async def _shutdown(self) -> None:
        self.app.shutdown()
