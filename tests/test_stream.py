import asyncio
import errno
import threading
import time

import pytest

from conftest import FakeCamera
from color_relay.app import AppState
from color_relay.camera import CameraDevice, CameraError, DeviceEnumerator
from color_relay.stream import ACTIVE, IDLE, StreamManager

DEVICES = [CameraDevice("/dev/video0", "Front"), CameraDevice("/dev/video2", "")]


@pytest.fixture
def manager(notifier, camera_factory):
    state = AppState()
    enumerator = DeviceEnumerator(notifier, lister=lambda: list(DEVICES))
    mgr = StreamManager(state, notifier, enumerator, camera_factory)
    yield mgr
    mgr.stop()


@pytest.mark.asyncio
async def test_start_twice_keeps_only_second_session(manager, camera_factory):
    assert await manager.start("/dev/video0")
    first = manager.state.stream
    assert await manager.start("/dev/video2")

    assert manager.state.stream is not first
    assert manager.state.stream.device_id == "/dev/video2"
    first_cam, second_cam = camera_factory.created
    assert first_cam.stopped
    assert all(t.stopped for t in first.tracks)
    assert second_cam.started and not second_cam.stopped
    assert manager.status == ACTIVE


@pytest.mark.asyncio
async def test_start_refreshes_devices_and_selection(manager):
    await manager.start("/dev/video2")
    assert manager.state.devices == DEVICES
    assert manager.state.selected_device_id == "/dev/video2"


@pytest.mark.asyncio
async def test_default_device_selects_first_listed(manager, camera_factory):
    await manager.start()
    assert camera_factory.created[0].device_id is None
    assert manager.state.selected_device_id == "/dev/video0"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, label",
    [
        (PermissionError(errno.EACCES, "Camera access denied"), "PermissionError"),
        (FileNotFoundError(errno.ENOENT, "No such camera device"), "FileNotFoundError"),
        (CameraError("Could not open camera /dev/video9"), "CameraError"),
        (ValueError("unsupported pixel format"), "ValueError"),
    ],
)
async def test_failed_start_stays_idle_and_reports(manager, notifier, camera_factory, error, label):
    await manager.start("/dev/video0")
    camera_factory.failures["/dev/video9"] = error

    assert not await manager.start("/dev/video9")

    assert manager.state.stream is None
    assert manager.status == IDLE
    assert camera_factory.created[0].stopped
    text, kind = notifier.notes[-1]
    assert kind == "error"
    assert text.startswith(f"Camera error: {label}")


@pytest.mark.asyncio
async def test_stop_is_idempotent(manager, camera_factory):
    manager.stop()
    await manager.start("/dev/video0")
    manager.stop()
    manager.stop()
    assert manager.state.stream is None
    assert camera_factory.created[0].stopped


@pytest.mark.asyncio
async def test_handle_delivers_frames(manager):
    await manager.start("/dev/video0")
    for _ in range(50):
        frame = manager.state.stream.latest_frame()
        if frame is not None:
            break
        await asyncio.sleep(0.02)
    assert frame is not None
    assert frame.shape == (48, 64, 3)


@pytest.mark.asyncio
async def test_opener_failure_is_reported(notifier, camera_factory):
    def opener(device_id):
        raise ValueError(f"Malformed camera id {device_id!r}")

    enumerator = DeviceEnumerator(notifier, lister=lambda: [])
    mgr = StreamManager(AppState(), notifier, enumerator, opener)

    assert not await mgr.start("bogus")
    assert mgr.status == IDLE
    assert notifier.notes == [("Camera error: ValueError Malformed camera id 'bogus'", "error")]


class SlowStopCamera(FakeCamera):
    def stop(self) -> None:
        time.sleep(0.3)
        super().stop()


@pytest.mark.asyncio
async def test_replacing_a_stream_keeps_the_loop_responsive(notifier):
    cameras = []

    def opener(device_id):
        cameras.append(SlowStopCamera(device_id))
        return cameras[-1]

    enumerator = DeviceEnumerator(notifier, lister=lambda: [])
    mgr = StreamManager(AppState(), notifier, enumerator, opener)
    await mgr.start("/dev/video0")

    ticks = 0

    async def heartbeat():
        nonlocal ticks
        while True:
            await asyncio.sleep(0.01)
            ticks += 1

    beat = asyncio.ensure_future(heartbeat())
    try:
        assert await mgr.start("/dev/video2")
    finally:
        beat.cancel()
    # The old camera took 0.3 s to release without stalling other work
    assert cameras[0].stopped
    assert ticks >= 10
    mgr.stop()


class BlockingStartCamera(FakeCamera):
    def __init__(self, device_id, release: threading.Event):
        super().__init__(device_id)
        self.entered = threading.Event()
        self.release = release

    def start(self) -> None:
        self.entered.set()
        self.release.wait(5)
        super().start()


@pytest.mark.asyncio
async def test_cancelled_start_releases_camera_once_acquired(notifier):
    release = threading.Event()
    cameras = []

    def opener(device_id):
        cameras.append(BlockingStartCamera(device_id, release))
        return cameras[-1]

    enumerator = DeviceEnumerator(notifier, lister=lambda: [])
    mgr = StreamManager(AppState(), notifier, enumerator, opener)
    starting = asyncio.ensure_future(mgr.start("/dev/video0"))
    while not cameras or not cameras[0].entered.is_set():
        await asyncio.sleep(0.01)

    starting.cancel()
    with pytest.raises(asyncio.CancelledError):
        await starting
    release.set()
    for _ in range(100):
        if cameras[0].stopped:
            break
        await asyncio.sleep(0.02)

    assert cameras[0].started
    assert cameras[0].stopped
    assert mgr.state.stream is None
