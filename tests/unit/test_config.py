"""Unit tests for configuration."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from whatnow.config import FailurePolicy, WhatNowConfig, WhatNowSettings
from whatnow.machine import WhatNow
from whatnow.types import TERMINAL


def _config(**overrides: object) -> WhatNowConfig:
    return WhatNowConfig(
        steps={"end": TERMINAL},
        initial_state={},
        on_change=lambda: None,
        on_error=lambda _error: None,
        **overrides,  # type: ignore[arg-type]
    )


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("WHATNOW_LOG_LEVEL", "WHATNOW_DEBUG", "WHATNOW_FAILURE_POLICY"):
        monkeypatch.delenv(name, raising=False)

    settings = WhatNowSettings(_env_file=None)

    assert settings.log_level == "INFO"
    assert settings.debug is False
    assert settings.failure_policy is FailurePolicy.STALL


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WHATNOW_FAILURE_POLICY", "release")
    monkeypatch.setenv("WHATNOW_LOG_LEVEL", "WARNING")

    settings = WhatNowSettings(_env_file=None)

    assert settings.failure_policy is FailurePolicy.RELEASE
    assert settings.log_level == "WARNING"


def test_settings_read_env_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("WHATNOW_DEBUG", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("WHATNOW_DEBUG=true\nUNRELATED=1\n", encoding="utf-8")

    settings = WhatNowSettings(_env_file=env_file)

    assert settings.debug is True


def test_setup_logging_enables_package_debug(
    settings: WhatNowSettings, monkeypatch: pytest.MonkeyPatch
) -> None:
    levels: list[str] = []
    monkeypatch.setattr("whatnow.config.configure_logging", levels.append)

    settings.setup_logging()
    assert levels == ["DEBUG"]
    try:
        assert logging.getLogger("whatnow").level == logging.DEBUG
    finally:
        logging.getLogger("whatnow").setLevel(logging.NOTSET)


def test_machine_takes_policy_from_settings() -> None:
    settings = WhatNowSettings(_env_file=None, failure_policy=FailurePolicy.RELEASE)

    machine: WhatNow = WhatNow(_config(), settings=settings)

    assert machine.settings is settings
    assert machine._failure_policy is FailurePolicy.RELEASE


def test_config_policy_overrides_settings(settings: WhatNowSettings) -> None:
    machine: WhatNow = WhatNow(_config(failure_policy=FailurePolicy.RELEASE), settings=settings)

    assert settings.failure_policy is FailurePolicy.STALL
    assert machine._failure_policy is FailurePolicy.RELEASE
