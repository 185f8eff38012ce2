"""Capture sources for player snapshots."""

from .webcam import CaptureSource, WebcamCaptureSource

__all__ = ["CaptureSource", "WebcamCaptureSource"]
