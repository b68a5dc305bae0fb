"""Capture session lifecycle: one active stream at a time."""

import asyncio
import functools
import logging
import threading
import time
from typing import Callable, List, Optional

import numpy as np

from .camera import BaseCamera, DeviceEnumerator, open_camera
from .config import Config

log = logging.getLogger(__name__)

IDLE = "idle"
ACTIVE = "active"


class StreamHandle:
    """A live capture session: its camera track(s) plus a frame reader thread."""

    def __init__(self, device_id: Optional[str], camera: BaseCamera, fps: int = Config.CAPTURE_FPS) -> None:
        self.device_id = device_id
        self.tracks: List[BaseCamera] = [camera]
        self.fps = fps
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._frame_lock = threading.Lock()
        self._latest_frame: Optional[np.ndarray] = None

    def start(self) -> None:
        """Start every track and the reader; blocking, run it off the loop."""
        try:
            for track in self.tracks:
                track.start()
        except BaseException:
            self.stop()
            raise
        self._thread = threading.Thread(target=self._run, name="stream-reader", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Halt the reader and stop every track."""
        self._stop.set()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=2)
        for track in self.tracks:
            track.stop()
        with self._frame_lock:
            self._latest_frame = None

    def latest_frame(self) -> Optional[np.ndarray]:
        """Return a copy of the most recent frame, or None."""
        with self._frame_lock:
            if self._latest_frame is None:
                return None
            return self._latest_frame.copy()

    def _run(self) -> None:
        frame_interval = 1.0 / max(1, self.fps)
        next_frame_ts = time.time()
        while not self._stop.is_set():
            now = time.time()
            if now < next_frame_ts:
                time.sleep(min(0.1, next_frame_ts - now))
                continue
            # Reset the schedule instead of bursting when we fall behind
            next_frame_ts += frame_interval
            if next_frame_ts < now:
                next_frame_ts = now + frame_interval
            try:
                frame = self.tracks[0].read()
            except Exception:
                log.debug("Frame read failed", exc_info=True)
                frame = None
            if frame is None:
                continue
            with self._frame_lock:
                self._latest_frame = frame


class StreamManager:
    """Sole owner of `state.stream`.

    `start()` always stops the previous session before acquiring the next, so
    no camera is left open behind a replaced handle.
    """

    def __init__(
        self,
        state,
        notifier,
        enumerator: DeviceEnumerator,
        opener: Callable[[Optional[str]], BaseCamera] = open_camera,
    ) -> None:
        self.state = state
        self.notifier = notifier
        self.enumerator = enumerator
        self._opener = opener

    @property
    def status(self) -> str:
        return ACTIVE if self.state.stream is not None else IDLE

    async def start(self, device_id: Optional[str] = None) -> bool:
        """Open `device_id` (or the platform default) as the active stream.

        Returns:
          True when a session is now active; False after reporting a failure.
        """
        await self._release(self._detach())
        try:
            handle = StreamHandle(device_id, self._opener(device_id))
        except Exception as e:
            self._report(e)
            return False
        # Shielded so a cancelled caller cannot orphan a camera mid-start
        acquire = asyncio.ensure_future(asyncio.to_thread(handle.start))
        try:
            await asyncio.shield(acquire)
        except asyncio.CancelledError:
            acquire.add_done_callback(functools.partial(self._abandon, handle))
            raise
        except Exception as e:
            # Backends raise OSError, CameraError, cv2.error and more
            self._report(e)
            return False
        # Another start may have bound a session while we were acquiring
        await self._release(self._detach())
        self.state.stream = handle
        log.info("Camera started (%s)", device_id or "default")

        # Labels may only be readable once a device has been opened
        devices = await self.enumerator.list_cameras()
        self.state.devices = devices
        if device_id:
            self.state.selected_device_id = device_id
        elif devices:
            self.state.selected_device_id = devices[0].id
        return True

    def stop(self) -> None:
        """Release the active session, if any. Idempotent.

        Blocks while the reader thread joins; use from shutdown paths only.
        """
        handle = self._detach()
        if handle is not None:
            handle.stop()
            log.info("Camera stopped (%s)", handle.device_id or "default")

    def _detach(self) -> Optional[StreamHandle]:
        handle = self.state.stream
        self.state.stream = None
        return handle

    async def _release(self, handle: Optional[StreamHandle]) -> None:
        if handle is None:
            return
        await asyncio.to_thread(handle.stop)
        log.info("Camera stopped (%s)", handle.device_id or "default")

    def _report(self, e: Exception) -> None:
        log.warning("Camera start failed", exc_info=e)
        self.notifier.notify(f"Camera error: {type(e).__name__} {e}", "error")

    @staticmethod
    def _abandon(handle: StreamHandle, acquire: asyncio.Future) -> None:
        if acquire.cancelled() or acquire.exception() is not None:
            # A failed start already released its tracks
            return
        handle.stop()
        log.info("Released camera from cancelled start (%s)", handle.device_id or "default")
