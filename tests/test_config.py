"""Tests for settings loading and logging bootstrap."""

from __future__ import annotations

import logging

from riddle_controller.config import Settings, get_settings
from riddle_controller.logging_config import configure_logging


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.game.total_question == 3
    assert settings.game.countdown_ms == 3000
    assert settings.game.countdown_tick_ms == 10
    assert settings.game.celebration_seconds == 5.0
    assert settings.camera.device_id == 0


def test_environment_overrides_nested_values(monkeypatch) -> None:
    monkeypatch.setenv("GAME__COUNTDOWN_MS", "1500")
    monkeypatch.setenv("BACKEND_API_URL", "https://riddles.example/api/")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.game.countdown_ms == 1500
    assert settings.backend_api_url == "https://riddles.example/api"
    assert settings.log_level == "DEBUG"


def test_override_env_file(tmp_path) -> None:
    env_file = tmp_path / "test.env"
    env_file.write_text("CONTROLLER_PORT=6123\nCAMERA__JPEG_QUALITY=70\n", encoding="utf-8")

    settings = get_settings(env_file)

    assert settings.controller_port == 6123
    assert settings.camera.jpeg_quality == 70


def test_configure_logging_creates_directory(tmp_path) -> None:
    log_dir = tmp_path / "nested" / "logs"

    configure_logging("WARNING", log_dir, retention_days=3)

    assert log_dir.is_dir()
    assert logging.getLogger().level == logging.WARNING


def test_configure_logging_caps_chatty_loggers(tmp_path) -> None:
    configure_logging("DEBUG", tmp_path, retention_days=1)

    assert logging.getLogger("riddle_controller").level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("uvicorn.access").level == logging.WARNING
