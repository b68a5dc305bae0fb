"""Application state and wiring of the sampling/dispatch pipeline."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .camera import (
    CameraDevice,
    DeviceEnumerator,
    camera_options,
    capture_supported,
    list_cameras,
    open_camera,
)
from .color import Color
from .dispatcher import Dispatcher
from .notifier import Notifier
from .preferences import KEY_AUTO, KEY_CAMERA_ID, PreferenceStore
from .sampler import Sampler
from .stream import StreamHandle, StreamManager

log = logging.getLogger(__name__)


@dataclass
class AppState:
    """Shared mutable state read by the dashboard and the periodic tasks."""

    color: Color = field(default_factory=Color)
    stream: Optional[StreamHandle] = None
    devices: List[CameraDevice] = field(default_factory=list)
    selected_device_id: Optional[str] = None
    auto_enabled: bool = False
    visible: bool = True


class ColorRelayApp:
    """Owns every component; all methods run on the event loop thread."""

    def __init__(
        self,
        prefs: PreferenceStore,
        notifier: Optional[Notifier] = None,
        session=None,
        opener=open_camera,
        lister=list_cameras,
    ) -> None:
        self.state = AppState()
        self.prefs = prefs
        self.notifier = notifier or Notifier()
        enumerator = DeviceEnumerator(self.notifier, lister)
        self.streams = StreamManager(self.state, self.notifier, enumerator, opener)
        self.sampler = Sampler(self.state)
        self.dispatcher = Dispatcher(self.state, self.notifier, session=session)

    def restore(self) -> Optional[str]:
        """Apply saved preferences; returns the saved camera id, if any."""
        saved_id = self.prefs.load(KEY_CAMERA_ID)
        if self.prefs.load_bool(KEY_AUTO):
            self.state.auto_enabled = True
            self.dispatcher.start_auto()
        self.state.selected_device_id = saved_id
        log.info("Restored preferences (camera=%s, auto=%s)", saved_id or "default", self.state.auto_enabled)
        return saved_id

    async def init(self) -> None:
        """Restore preferences, open the camera and begin sampling."""
        if not capture_supported():
            self.notifier.notify("Camera capture not supported: picamera2 backend unavailable", "error")
            return
        saved_id = self.restore()
        await self.streams.start(saved_id)
        self.sampler.start()

    def _save(self, key: str, value) -> None:
        try:
            self.prefs.save(key, value)
        except OSError as e:
            self.notifier.notify(f"Could not save preferences: {e}", "error")

    async def select_camera(self, device_id: str) -> bool:
        self._save(KEY_CAMERA_ID, device_id)
        return await self.streams.start(device_id)

    def set_auto(self, enabled: bool) -> None:
        self._save(KEY_AUTO, enabled)
        self.state.auto_enabled = enabled
        if enabled:
            self.dispatcher.start_auto()
        else:
            self.dispatcher.stop_auto()

    async def send_now(self) -> None:
        await self.dispatcher.send_color()

    async def on_visibility_change(self, visible: bool) -> None:
        """Re-acquire the camera when the dashboard becomes visible again."""
        was_visible = self.state.visible
        self.state.visible = visible
        if visible and not was_visible and self.state.stream is None:
            await self.streams.start(self.state.selected_device_id)
            self.sampler.start()

    def snapshot(self) -> dict:
        """JSON-ready view of the state for the dashboard."""
        color = self.state.color
        return {
            "color": color.to_payload(),
            "swatch": color.css(),
            "stream": self.streams.status,
            "auto": self.state.auto_enabled,
            "selected_device_id": self.state.selected_device_id,
            "cameras": camera_options(self.state.devices, self.state.selected_device_id),
            "messages": [{"text": m.text, "kind": m.kind} for m in self.notifier.messages()],
        }

    def shutdown(self) -> None:
        self.dispatcher.stop_auto()
        self.sampler.stop()
        self.streams.stop()
