"""Durable user preferences: last camera and auto-send flag.

Values are stored as strings in a small JSON object file. Anything unreadable
is treated as "unset" so callers fall back to their defaults.
"""

import json
import logging
import os
import tempfile
from typing import Dict, Optional

from .config import Config

log = logging.getLogger(__name__)

KEY_CAMERA_ID = "rgbw.cameraDeviceId"
KEY_AUTO = "rgbw.autoMode"
KEYS = (KEY_CAMERA_ID, KEY_AUTO)


class PreferenceStore:
    """Key-value store over the two fixed preference keys."""

    def __init__(self, path: str = Config.PREFS_PATH) -> None:
        self.path = path

    def _read(self) -> Dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            log.warning("Ignoring unreadable preferences %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            log.warning("Ignoring malformed preferences %s", self.path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def load(self, key: str) -> Optional[str]:
        """Return the stored string for `key`, or None when unset."""
        if key not in KEYS:
            raise KeyError(key)
        return self._read().get(key)

    def load_bool(self, key: str) -> bool:
        return self.load(key) == "true"

    def save(self, key: str, value) -> None:
        """Persist `value` under `key`; bools are written as "true"/"false"."""
        if key not in KEYS:
            raise KeyError(key)
        if isinstance(value, bool):
            value = "true" if value else "false"
        data = self._read()
        data[key] = str(value)
        folder = os.path.dirname(self.path) or "."
        os.makedirs(folder, exist_ok=True)
        # Write-then-rename so a crash never leaves a half-written file
        fd, tmp = tempfile.mkstemp(dir=folder, prefix=".prefs-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except BaseException:
            os.unlink(tmp)
            raise
