"""Central configuration for the riddle game controller service."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ROOT_DIR = Path(__file__).resolve().parents[1]
DEFAULT_ENV_FILE = ROOT_DIR / ".env"


# ============================================================
# Nested Configuration Classes
# ============================================================

class GameSettings(BaseModel):
    """Riddle session tuning."""
    total_question: int = Field(3, ge=1, description="Number of riddles requested per session")
    countdown_ms: int = Field(3000, ge=0, description="Capture countdown duration (ms)")
    countdown_tick_ms: int = Field(10, ge=1, description="Countdown display increment (ms)")
    celebration_seconds: float = Field(5.0, ge=0.0, description="How long the step celebration effect stays on")


class CameraSettings(BaseModel):
    """Webcam capture configuration."""
    device_id: int = Field(0, description="OpenCV camera index")
    resolution_width: int = Field(640, description="Capture width (pixels)")
    resolution_height: int = Field(480, description="Capture height (pixels)")
    jpeg_quality: int = Field(90, ge=1, le=100, description="JPEG quality for captured frames")
    warmup_frames: int = Field(2, ge=0, description="Frames discarded after opening the camera")


class PerformanceSettings(BaseModel):
    """Queue and background loop tuning."""
    ui_event_queue_size: int = Field(16, ge=1, description="Max buffered UI events per subscriber")
    heartbeat_interval: float = Field(30.0, gt=0.0, description="Seconds between UI heartbeats")


class Settings(BaseSettings):
    """Environment-driven settings for controller subsystems."""

    # Backend & API
    backend_api_url: str = Field("http://localhost:8080", description="Riddle backend REST base URL")
    backend_timeout_seconds: float = Field(15.0, gt=0.0, description="Timeout for each backend request")

    # Controller HTTP Server
    controller_host: str = Field("0.0.0.0", description="Host interface for local FastAPI server")
    controller_port: int = Field(5000, description="Port for FastAPI server")

    # Logging
    log_level: str = Field("INFO", description="Logging level")
    log_directory: Path = Field(ROOT_DIR / "logs", description="Log directory path")
    log_retention_days: int = Field(14, description="Number of log files to retain")

    # Nested Configuration Objects
    game: GameSettings = Field(default_factory=GameSettings, description="Riddle session settings")
    camera: CameraSettings = Field(default_factory=CameraSettings, description="Webcam settings")
    performance: PerformanceSettings = Field(default_factory=PerformanceSettings, description="Performance tuning")

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("backend_api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    model_config = SettingsConfigDict(
        env_file=str(DEFAULT_ENV_FILE),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings(override_env_file: Optional[Path] = None) -> Settings:
    """Cached Settings instance; accepts optional env override for tests."""

    if override_env_file:
        return Settings(_env_file=str(override_env_file))
    return Settings()
