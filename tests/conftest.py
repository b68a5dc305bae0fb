"""Shared fixtures: fake camera backends, HTTP responses and preference files."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import numpy as np
import pytest

from color_relay.camera import BaseCamera
from color_relay.preferences import PreferenceStore


class FakeCamera(BaseCamera):
    """Camera backend producing a constant BGR frame."""

    def __init__(self, device_id: Optional[str], bgr=(30, 20, 10), size=(64, 48), fail: Optional[Exception] = None):
        self.device_id = device_id
        self.frame = np.full((size[1], size[0], 3), bgr, dtype=np.uint8)
        self.fail = fail
        self.started = False
        self.stopped = False

    def start(self) -> None:
        if self.fail is not None:
            raise self.fail
        self.started = True

    def read(self):
        return self.frame if self.started and not self.stopped else None

    def stop(self) -> None:
        self.stopped = True


class CameraFactory:
    """`opener` callable recording every camera it hands out."""

    def __init__(self) -> None:
        self.created: List[FakeCamera] = []
        self.failures = {}

    def __call__(self, device_id: Optional[str]) -> FakeCamera:
        cam = FakeCamera(device_id, fail=self.failures.get(device_id))
        self.created.append(cam)
        return cam


class FakeResponse:
    def __init__(self, status_code: int, body=None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body


class RecordingNotifier:
    """Notifier stand-in that keeps every message without timers."""

    def __init__(self) -> None:
        self.notes = []

    def notify(self, text: str, kind: str = "info"):
        self.notes.append((text, kind))

    def messages(self):
        return []


@pytest.fixture
def camera_factory() -> CameraFactory:
    return CameraFactory()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def prefs_path(tmp_path: Path) -> Path:
    return tmp_path / "config" / "prefs.json"


@pytest.fixture
def prefs(prefs_path: Path) -> PreferenceStore:
    return PreferenceStore(str(prefs_path))


