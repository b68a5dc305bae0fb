"""Periodic frame sampling into the current color."""

import logging

import cv2

from .color import WHITE_CHANNEL, Color, average_rgb
from .config import Config
from .tasks import PeriodicTask

log = logging.getLogger(__name__)


class Sampler:
    """Every `interval` seconds, average the active stream's frame into `state.color`."""

    def __init__(self, state, interval: float = Config.SAMPLE_INTERVAL_SEC, width: int = Config.SAMPLE_WIDTH) -> None:
        self.state = state
        self.width = width
        self._task = PeriodicTask("sampler", interval, self.tick)

    @property
    def running(self) -> bool:
        return self._task.running

    def start(self) -> None:
        """(Re)start sampling; a previous run is cancelled first."""
        self._task.start()

    def stop(self) -> None:
        self._task.stop()

    def tick(self) -> None:
        stream = self.state.stream
        if stream is None:
            return
        frame = stream.latest_frame()
        # The stream may still be negotiating its first frame
        if frame is None or frame.ndim < 2 or not frame.shape[0] or not frame.shape[1]:
            return
        src_h, src_w = frame.shape[:2]
        w = self.width
        h = max(1, int(src_h / src_w * w + 0.5))
        try:
            small = cv2.resize(frame, (w, h), interpolation=cv2.INTER_AREA)
            if small.ndim == 2:
                rgba = cv2.cvtColor(small, cv2.COLOR_GRAY2RGBA)
            elif small.shape[2] == 4:
                rgba = cv2.cvtColor(small, cv2.COLOR_BGRA2RGBA)
            else:
                rgba = cv2.cvtColor(small, cv2.COLOR_BGR2RGBA)
            r, g, b = average_rgb(rgba.reshape(-1))
        except (cv2.error, ValueError) as e:
            # One bad frame is not worth reporting at 10 Hz
            log.debug("Sample skipped: %s", e)
            return
        self.state.color = Color(r, g, b, WHITE_CHANNEL)
