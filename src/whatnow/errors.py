"""Error types raised and reported by the step machine."""

from __future__ import annotations

from collections.abc import Hashable, Iterable


class WhatNowError(Exception):
    """Base class for all errors raised by this package."""


class StepError(WhatNowError):
    """A step handler invocation failed.

    This is the single error kind delivered to ``on_error``. Exceptions raised by
    handlers are wrapped in it (the original exception is kept as ``__cause__``).
    """

    def __init__(self, message: str, *, step: Hashable | None = None) -> None:
        super().__init__(message)
        self.step = step

    @classmethod
    def from_exception(cls, exc: BaseException, *, step: Hashable | None) -> StepError:
        if isinstance(exc, StepError):
            return exc
        error = cls(f"Unexpected error: {exc}", step=step)
        error.__cause__ = exc
        return error


class UnknownStepError(StepError):
    """A chain reached a step that has no entry in the step table."""

    def __init__(self, step: Hashable) -> None:
        super().__init__(f"No handler registered for step {step!r}", step=step)


class StepTableError(WhatNowError, ValueError):
    """The step table does not cover every step of the declared domain."""

    def __init__(self, missing: Iterable[Hashable]) -> None:
        self.missing = list(missing)
        super().__init__(f"Step table is missing entries for: {self.missing!r}")
