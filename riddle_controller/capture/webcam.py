"""
Webcam capture source for the riddle game.
Opens the local camera lazily and takes one JPEG snapshot per request.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

import cv2
import numpy as np

from ..config import CameraSettings
from ..errors import CaptureUnavailable

logger = logging.getLogger(__name__)


class CaptureSource(Protocol):
    """Anything that can produce one encoded snapshot on demand."""

    async def acquire(self) -> bytes:
        """Return JPEG bytes or raise ``CaptureUnavailable``."""

    async def close(self) -> None:
        ...


class WebcamCaptureSource:
    """Single-shot webcam snapshots through OpenCV."""

    def __init__(self, settings: CameraSettings) -> None:
        self.settings = settings
        self._cap: Optional[cv2.VideoCapture] = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return bool(self._cap is not None and self._cap.isOpened())

    async def acquire(self) -> bytes:
        """Grab and encode one frame; the camera read runs in a worker thread."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            if not self.is_open:
                await loop.run_in_executor(None, self._open_locked)

            frame = await loop.run_in_executor(None, self._read_frame)
            if frame is None:
                # drop the handle so the next attempt reopens the device
                await loop.run_in_executor(None, self._release_locked)
                raise CaptureUnavailable("camera returned no frame")

            encoded = self._encode_jpeg(frame)
            if encoded is None:
                raise CaptureUnavailable("failed to encode frame")
            logger.info(f"📸 Captured frame ({len(encoded)} bytes)")
            return encoded

    async def close(self) -> None:
        async with self._lock:
            if self._cap is None:
                return
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._release_locked)

    def _open_locked(self) -> None:
        """Open the camera (must be called with lock held)."""
        logger.info(f"Opening webcam (device_id={self.settings.device_id})")
        cap = cv2.VideoCapture(self.settings.device_id)
        if not cap.isOpened():
            cap.release()
            logger.error(f"Failed to open webcam {self.settings.device_id}")
            raise CaptureUnavailable(f"camera {self.settings.device_id} unavailable")

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.settings.resolution_width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.settings.resolution_height)

        # first frames after open are often dark or stale
        for _ in range(self.settings.warmup_frames):
            cap.read()

        self._cap = cap
        logger.info("Webcam opened")

    def _release_locked(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Webcam released")

    def _read_frame(self) -> Optional[np.ndarray]:
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        if not ok or frame is None:
            logger.warning("Webcam read failed")
            return None
        return frame

    def _encode_jpeg(self, frame: np.ndarray) -> Optional[bytes]:
        try:
            success, encoded = cv2.imencode(
                ".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.settings.jpeg_quality]
            )
            if not success:
                return None
            return encoded.tobytes()
        except cv2.error:
            logger.exception("Failed to encode JPEG frame")
            return None


__all__ = ["CaptureSource", "WebcamCaptureSource"]
