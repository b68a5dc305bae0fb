"""Global configuration for the camera color relay.

This module exposes configuration constants via the `Config` class. All values
are read from environment variables with defaults suitable for a desktop or
Raspberry Pi with a single webcam.
"""

import os  # Environment and filesystem helpers
import re  # Robust parsing of numeric envs with comments


def _env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable robustly.

    Accepts values like "64" or "64 # comment" and returns the first integer
    found. Falls back to default if parsing fails.
    """
    val = os.getenv(name)
    if val is None:
        return default
    s = str(val).strip().strip('"').strip("'")
    m = re.search(r"-?\d+", s)
    if not m:
        return default
    return int(m.group(0))


def _env_float(name: str, default: float) -> float:
    """Parse a float from an environment variable, same rules as `_env_int`."""
    val = os.getenv(name)
    if val is None:
        return default
    s = str(val).strip().strip('"').strip("'")
    m = re.search(r"-?\d+(?:\.\d+)?", s)
    if not m:
        return default
    return float(m.group(0))


def _env_path(name: str, default: str) -> str:
    """Normalize a path env: strip quotes/whitespace, expand ~ and $VARS, make absolute."""
    raw = str(os.getenv(name, default)).strip().strip('"').strip("'")
    raw = os.path.expanduser(os.path.expandvars(raw))
    return raw if os.path.isabs(raw) else os.path.abspath(raw)


class Config:
    """Application configuration sourced from environment variables.

    Settings are class attributes so modules can import them as constants
    (e.g., `from color_relay.config import Config`). To override a setting,
    define the corresponding environment variable before launching.
    """
    # Remote color endpoint
    COLOR_ENDPOINT = os.getenv("CR_COLOR_ENDPOINT", "http://localhost:8080/api/color").strip()
    # Seconds before an outbound send gives up; 0 means wait indefinitely
    HTTP_TIMEOUT_SEC = _env_float("CR_HTTP_TIMEOUT_SEC", 0.0)

    # Sampling
    SAMPLE_INTERVAL_SEC = _env_float("CR_SAMPLE_INTERVAL_SEC", 0.1)  # Sampler period (10 Hz)
    SAMPLE_WIDTH = _env_int("CR_SAMPLE_WIDTH", 64)  # Downscaled width before averaging

    # Auto mode
    AUTO_INTERVAL_SEC = _env_float("CR_AUTO_INTERVAL_SEC", 3.0)  # Repeat period for auto-send

    # Notifications
    NOTIFY_TTL_SEC = _env_float("CR_NOTIFY_TTL_SEC", 5.0)  # Message display window

    # Preferences (last camera and auto flag)
    PREFS_PATH = _env_path("CR_PREFS_PATH", os.path.join("~", ".config", "color_relay", "prefs.json"))

    # Camera
    CAMERA_BACKEND = os.getenv("CR_CAMERA_BACKEND", "auto").strip().lower()  # auto|picamera2|v4l2
    FRAME_WIDTH = _env_int("CR_FRAME_WIDTH", 640)  # Capture width in pixels
    FRAME_HEIGHT = _env_int("CR_FRAME_HEIGHT", 480)  # Capture height in pixels
    CAPTURE_FPS = _env_int("CR_CAPTURE_FPS", 15)  # Target FPS for the reader thread

    # Dashboard
    HOST = os.getenv("CR_HOST", "0.0.0.0")  # Flask bind host
    PORT = _env_int("CR_PORT", 8000)  # Flask bind port
    DEBUG = os.getenv("CR_DEBUG", "0") == "1"  # Flask debug switch

    # Logging
    LOG_LEVEL = os.getenv("CR_LOG_LEVEL", "INFO").strip().upper()
