"""Camera backends, device enumeration and factory for the color relay.

Provides a minimal interface to either Picamera2 (CSI cameras) or OpenCV's
VideoCapture (V4L2 devices like USB webcams). Frames are returned as BGR
NumPy arrays compatible with OpenCV.
"""

import asyncio
import errno
import glob
import logging
import os
import time  # Sleep on read failures to reduce busy looping
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import numpy as np  # Frame arrays

from .config import Config  # Global configuration

log = logging.getLogger(__name__)

PICAMERA_PREFIX = "picamera2:"
V4L2_SYSFS = "/sys/class/video4linux"


class CameraError(RuntimeError):
    """A capture session could not be opened or configured."""


class CapabilityUnsupported(CameraError):
    """The platform lacks an API this feature depends on."""


@dataclass(frozen=True)
class CameraDevice:
    """A selectable camera input.

    Attributes:
      id: Opaque identifier (`/dev/videoN` or `picamera2:N`); persisted as-is.
      label: Human-readable name; empty when the platform does not expose one.
    """

    id: str
    label: str = ""


class BaseCamera:
    """Abstract camera interface returning BGR frames.

    Subclasses must implement `start()`, `read()`, and `stop()`.
    """

    def start(self) -> None:
        """Initialize and start the camera stream."""
        raise NotImplementedError

    def read(self) -> Optional[np.ndarray]:
        """Read a single BGR frame.

        Returns:
          A NumPy array in BGR order, or None if a frame is not available.
        """
        raise NotImplementedError

    def stop(self) -> None:
        """Stop and release camera resources."""
        pass


class PiCamera2Wrapper(BaseCamera):
    """PiCamera2-based camera backend for CSI-connected camera modules."""

    def __init__(self, camera_num: int, size: Tuple[int, int]) -> None:
        """Create a camera with a given frame size.

        Args:
          camera_num: Index in `Picamera2.global_camera_info()`.
          size: `(width, height)` capture resolution.
        """
        self.camera_num = camera_num
        self.size = size
        self.picam2 = None
        self._started = False

    def start(self) -> None:
        """Configure and start Picamera2 streaming."""
        try:
            from picamera2 import Picamera2  # Imported lazily to avoid hard dependency
        except ImportError as e:
            raise CapabilityUnsupported("picamera2 is not installed") from e

        try:
            self.picam2 = Picamera2(self.camera_num)
        except IndexError as e:
            raise FileNotFoundError(errno.ENOENT, f"No CSI camera {self.camera_num}") from e
        w, h = self.size
        # RGB888 is laid out B,G,R in memory, i.e. already OpenCV order
        config = self.picam2.create_video_configuration(
            main={"size": (w, h), "format": "RGB888"}
        )
        self.picam2.configure(config)
        self.picam2.start()
        self._started = True

    def read(self) -> Optional[np.ndarray]:
        """Capture a frame in BGR order."""
        if not self._started:
            return None
        return self.picam2.capture_array("main")

    def stop(self) -> None:
        """Stop streaming and release resources."""
        try:
            if self.picam2:
                self.picam2.stop()
                self.picam2.close()
        except Exception:
            # Ignore errors during shutdown to keep cleanup robust
            log.debug("Picamera2 stop failed", exc_info=True)
        self.picam2 = None
        self._started = False


class Cv2V4L2Camera(BaseCamera):
    """OpenCV VideoCapture backend for V4L2 devices (e.g., USB webcams)."""

    def __init__(self, source: Union[int, str], size: Tuple[int, int], fps: int) -> None:
        """Create a V4L2 camera.

        Args:
          source: Device path (e.g., "/dev/video0") or OpenCV index.
          size: `(width, height)` capture resolution.
          fps: Requested frames per second.
        """
        import cv2  # Imported here to avoid global import cost if unused

        self.cv2 = cv2
        self.source = source
        self.size = size
        self.fps = fps
        self.cap = None

    def start(self) -> None:
        """Open the V4L2 device and set basic properties."""
        if isinstance(self.source, str):
            if not os.path.exists(self.source):
                raise FileNotFoundError(errno.ENOENT, "No such camera device", self.source)
            if not os.access(self.source, os.R_OK | os.W_OK):
                raise PermissionError(errno.EACCES, "Camera access denied", self.source)
        cap = self.cv2.VideoCapture(self.source)
        if not cap.isOpened():
            cap.release()
            raise CameraError(f"Could not open camera {self.source}")
        w, h = self.size
        cap.set(self.cv2.CAP_PROP_FRAME_WIDTH, w)
        cap.set(self.cv2.CAP_PROP_FRAME_HEIGHT, h)
        cap.set(self.cv2.CAP_PROP_FPS, self.fps)
        self.cap = cap

    def read(self) -> Optional[np.ndarray]:
        """Grab a frame from the V4L2 device."""
        if self.cap is None:
            return None
        ok, frame = self.cap.read()
        if not ok:  # If read failed, back off briefly
            time.sleep(0.01)
            return None
        return frame  # Frame is already BGR

    def stop(self) -> None:
        """Release the V4L2 device."""
        try:
            if self.cap is not None:
                self.cap.release()
        except Exception:
            log.debug("VideoCapture release failed", exc_info=True)
        self.cap = None


def _picamera2_available() -> bool:
    try:
        import importlib  # Dynamic import to test availability

        importlib.import_module("picamera2")
        return True
    except ImportError:
        return False


def capture_supported() -> bool:
    """Return False when the configured backend cannot be used at all."""
    if Config.CAMERA_BACKEND == "picamera2":
        return _picamera2_available()
    return True


def _read_sysfs(index: int, attr: str) -> Optional[str]:
    path = Path(V4L2_SYSFS) / f"video{index}" / attr
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError:
        return None


def _is_capture_node(index: int) -> bool:
    # UVC drivers expose a metadata node next to each capture node; only
    # the first (index 0) streams video.
    value = _read_sysfs(index, "index")
    return value is None or value == "0"


def list_cameras() -> List[CameraDevice]:
    """Query the platform for video-capture devices.

    Returns:
      V4L2 capture nodes in node order, followed by CSI cameras.

    Raises:
      CapabilityUnsupported: Neither V4L2 nor picamera2 is present.
    """
    has_v4l2 = os.path.isdir(V4L2_SYSFS)
    has_picamera2 = _picamera2_available()
    if not has_v4l2 and not has_picamera2:
        raise CapabilityUnsupported("Camera enumeration not supported on this platform")

    devices: List[CameraDevice] = []
    if has_v4l2 and Config.CAMERA_BACKEND != "picamera2":
        indices = []
        for path in glob.glob("/dev/video*"):
            try:
                indices.append(int(Path(path).name.replace("video", "")))
            except ValueError:
                continue
        for index in sorted(indices):
            if not _is_capture_node(index):
                continue
            devices.append(CameraDevice(f"/dev/video{index}", _read_sysfs(index, "name") or ""))
    if has_picamera2 and Config.CAMERA_BACKEND != "v4l2":
        from picamera2 import Picamera2

        for info in Picamera2.global_camera_info():
            num = info.get("Num", len(devices))
            devices.append(CameraDevice(f"{PICAMERA_PREFIX}{num}", str(info.get("Model", ""))))
    log.debug("Enumerated %d cameras", len(devices))
    return devices


def camera_options(devices: List[CameraDevice], selected_id: Optional[str]) -> List[Dict[str, object]]:
    """Build picker entries, substituting "Camera N" for empty labels."""
    return [
        {
            "id": d.id,
            "label": d.label or f"Camera {idx + 1}",
            "selected": bool(selected_id) and d.id == selected_id,
        }
        for idx, d in enumerate(devices)
    ]


def open_camera(device_id: Optional[str] = None) -> BaseCamera:
    """Factory creating (not starting) the backend for a device id.

    Args:
      device_id: Exact device to open, or None for the platform default.
    """
    size = (Config.FRAME_WIDTH, Config.FRAME_HEIGHT)
    backend = Config.CAMERA_BACKEND
    if device_id:
        if device_id.startswith(PICAMERA_PREFIX):
            try:
                num = int(device_id[len(PICAMERA_PREFIX):])
            except ValueError as e:
                raise CameraError(f"Malformed camera id {device_id!r}") from e
            return PiCamera2Wrapper(num, size=size)
        return Cv2V4L2Camera(device_id, size=size, fps=Config.CAPTURE_FPS)

    if backend == "picamera2":
        return PiCamera2Wrapper(0, size=size)
    if backend == "v4l2":
        return Cv2V4L2Camera(0, size=size, fps=Config.CAPTURE_FPS)
    # Auto: try Picamera2 first, fall back to V4L2
    if _picamera2_available():
        return PiCamera2Wrapper(0, size=size)
    return Cv2V4L2Camera(0, size=size, fps=Config.CAPTURE_FPS)


class DeviceEnumerator:
    """Soft-failing camera listing that reports problems via the notifier."""

    def __init__(self, notifier, lister=list_cameras) -> None:
        self.notifier = notifier
        self._lister = lister

    async def list_cameras(self) -> List[CameraDevice]:
        """Return available cameras, or an empty list after notifying an error."""
        try:
            return await asyncio.to_thread(self._lister)
        except CapabilityUnsupported as e:
            self.notifier.notify(str(e), "error")
        except (OSError, RuntimeError) as e:
            self.notifier.notify(f"{type(e).__name__}: {e}", "error")
        return []
