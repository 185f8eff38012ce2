"""Tests for the OpenCV webcam capture source with a fake device."""

from __future__ import annotations

import numpy as np
import pytest

from riddle_controller.capture import webcam
from riddle_controller.config import CameraSettings
from riddle_controller.errors import CaptureUnavailable


class FakeDevice:
    opened = True
    frames_ok = True
    instances: list = []

    def __init__(self, device_id: int) -> None:
        self.device_id = device_id
        self.reads = 0
        self.released = False
        self.props = {}
        FakeDevice.instances.append(self)

    def isOpened(self) -> bool:
        return FakeDevice.opened and not self.released

    def set(self, prop, value) -> bool:
        self.props[prop] = value
        return True

    def read(self):
        self.reads += 1
        if not FakeDevice.frames_ok:
            return False, None
        return True, np.zeros((8, 8, 3), dtype=np.uint8)

    def release(self) -> None:
        self.released = True


@pytest.fixture(autouse=True)
def fake_device(monkeypatch):
    FakeDevice.opened = True
    FakeDevice.frames_ok = True
    FakeDevice.instances = []
    monkeypatch.setattr(webcam.cv2, "VideoCapture", FakeDevice)
    return FakeDevice


async def test_acquire_returns_jpeg() -> None:
    source = webcam.WebcamCaptureSource(CameraSettings(device_id=2, warmup_frames=2))

    image = await source.acquire()

    assert image[:2] == b"\xff\xd8"
    device = FakeDevice.instances[0]
    assert device.device_id == 2
    # two warmup frames plus the captured one
    assert device.reads == 3
    await source.close()
    assert device.released


async def test_camera_stays_open_between_captures() -> None:
    source = webcam.WebcamCaptureSource(CameraSettings(warmup_frames=0))

    await source.acquire()
    await source.acquire()

    assert len(FakeDevice.instances) == 1
    await source.close()


async def test_unopenable_camera_is_unavailable() -> None:
    FakeDevice.opened = False
    source = webcam.WebcamCaptureSource(CameraSettings())

    with pytest.raises(CaptureUnavailable):
        await source.acquire()
    assert not source.is_open


async def test_failed_read_reopens_next_time() -> None:
    source = webcam.WebcamCaptureSource(CameraSettings(warmup_frames=0))
    FakeDevice.frames_ok = False

    with pytest.raises(CaptureUnavailable):
        await source.acquire()

    FakeDevice.frames_ok = True
    image = await source.acquire()

    assert image[:2] == b"\xff\xd8"
    assert len(FakeDevice.instances) == 2
    await source.close()
