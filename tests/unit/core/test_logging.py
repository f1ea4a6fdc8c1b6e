"""Tests for logging configuration."""

from __future__ import annotations

import json
from collections.abc import Generator

import pytest
import structlog

from dnd_combat.core.config import Settings
from dnd_combat.core.logging import bind_context, clear_context, configure_logging, get_logger


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Restore structlog defaults after each test."""
    yield
    clear_context()
    structlog.reset_defaults()


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_lines_carry_context(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test JSON output includes the app name and bound context."""
        configure_logging(Settings(app_name="Arena", json_logs=True))
        bind_context(combat_round=3)

        get_logger("arena").info("Round started", combatants=2)

        entry = json.loads(capsys.readouterr().out.strip())
        assert entry["event"] == "Round started"
        assert entry["level"] == "info"
        assert entry["app"] == "Arena"
        assert entry["combat_round"] == 3
        assert entry["combatants"] == 2

    def test_level_filters(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test messages below the configured level are dropped."""
        configure_logging(Settings(log_level="WARNING", json_logs=True))

        logger = get_logger("arena")
        logger.info("hidden")
        logger.warning("shown")

        lines = capsys.readouterr().out.strip().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["shown"]

    def test_reads_environment(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test the cached settings drive configuration by default."""
        monkeypatch.setenv("DND_COMBAT_JSON_LOGS", "true")
        monkeypatch.setenv("DND_COMBAT_LOG_LEVEL", "ERROR")

        configure_logging()
        get_logger("arena").warning("hidden")
        get_logger("arena").error("shown")

        assert json.loads(capsys.readouterr().out.strip())["event"] == "shown"
