"""WhatNow: sequence async step handlers one chain at a time.

A machine is built from a step table (step -> async handler or ``TERMINAL``),
seed state/context and change/error callbacks. Callers request steps with
``act``; handlers return the next step and optional state/context
replacements, and may themselves ``act`` or ``reset``.
"""

__version__ = "0.1.0"

from whatnow.config import FailurePolicy, WhatNowConfig, WhatNowSettings
from whatnow.errors import StepError, StepTableError, UnknownStepError, WhatNowError
from whatnow.machine import WhatNow, check_step_table
from whatnow.types import (
    TERMINAL,
    ActFunction,
    MachineState,
    MachineStatus,
    StepActions,
    StepHandler,
    StepResult,
    StepTable,
    Terminal,
)

__all__ = [
    "__version__",
    "ActFunction",
    "FailurePolicy",
    "MachineState",
    "MachineStatus",
    "StepActions",
    "StepError",
    "StepHandler",
    "StepResult",
    "StepTable",
    "StepTableError",
    "TERMINAL",
    "Terminal",
    "UnknownStepError",
    "WhatNow",
    "WhatNowConfig",
    "WhatNowError",
    "WhatNowSettings",
    "check_step_table",
]
