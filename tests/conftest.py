"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from whatnow.config import FailurePolicy, WhatNowConfig, WhatNowSettings
from whatnow.errors import StepError
from whatnow.machine import WhatNow
from whatnow.types import StepTable


@dataclass
class Recorder:
    """Collects callback invocations made by a machine."""

    changes: int = 0
    errors: list[StepError] = field(default_factory=list)

    def on_change(self) -> None:
        self.changes += 1

    def on_error(self, error: StepError) -> None:
        self.errors.append(error)


MachineFactory = Callable[..., WhatNow[Any, Any, Any]]


@pytest.fixture
def settings() -> WhatNowSettings:
    """Provide settings that ignore the environment and any `.env` file."""
    return WhatNowSettings(
        _env_file=None,
        log_level="DEBUG",
        debug=True,
        failure_policy=FailurePolicy.STALL,
    )


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def make_machine(settings: WhatNowSettings, recorder: Recorder) -> MachineFactory:
    """Build a machine wired to the shared recorder."""

    def factory(
        steps: StepTable,
        initial_state: Any = None,
        **overrides: Any,
    ) -> WhatNow[Any, Any, Any]:
        config = WhatNowConfig(
            steps=steps,
            initial_state={"count": 0} if initial_state is None else initial_state,
            on_change=overrides.pop("on_change", recorder.on_change),
            on_error=overrides.pop("on_error", recorder.on_error),
            **overrides,
        )
        return WhatNow(config, settings=settings)

    return factory
