"""Configuration for a step machine.

Two layers:
- ``WhatNowConfig``: the per-machine wiring (step table, seeds, callbacks)
- ``WhatNowSettings``: process-wide knobs loaded from the environment and a
  local ``.env`` file (if present)

Environment variables:
- WHATNOW_LOG_LEVEL
- WHATNOW_DEBUG
- WHATNOW_FAILURE_POLICY   (``stall`` or ``release``)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Generic

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from whatnow.errors import StepError
from whatnow.logging import configure_logging
from whatnow.types import ContextT, StateT, StepTable


class FailurePolicy(str, Enum):
    """What happens to the queue item whose chain failed.

    STALL keeps it as the current item, so later requests wait behind it until
    ``reset`` is called. RELEASE marks it done and lets queued work proceed.
    """

    STALL = "stall"
    RELEASE = "release"


class WhatNowSettings(BaseSettings):
    """Settings shared by every machine in the process."""

    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug logging for the whatnow package",
    )
    failure_policy: FailurePolicy = Field(
        default=FailurePolicy.STALL,
        description="Queue handling after a handler failure",
    )

    model_config = SettingsConfigDict(
        env_prefix="WHATNOW_",
        env_file=".env",
        extra="ignore",
    )

    def setup_logging(self) -> None:
        """Configure structured logging based on settings."""
        configure_logging(self.log_level)

        if self.debug:
            logging.getLogger("whatnow").setLevel(logging.DEBUG)


@dataclass(frozen=True, slots=True)
class WhatNowConfig(Generic[StateT, ContextT]):
    """Wiring for a single machine.

    ``step_domain`` optionally lists every step the workflow can reach; when
    given, the table is checked for totality at construction.
    ``failure_policy`` overrides the process-wide setting for this machine.
    """

    steps: StepTable
    initial_state: StateT
    on_change: Callable[[], None]
    on_error: Callable[[StepError], None]
    initial_context: ContextT | None = None
    step_domain: Iterable[Hashable] | None = None
    failure_policy: FailurePolicy | None = None
