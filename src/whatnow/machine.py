"""Step machine: runs queued steps one chain at a time.

Each call to ``act`` queues a work item. A single drain task takes the current
item, invokes the handler registered for its step, commits the returned
state/context and follows the returned step until it reaches ``TERMINAL``.
Only then is the item released and the next one started, so at most one
handler invocation is ever in flight.

``reset`` abandons the running chain: the in-flight invocation finishes but its
result is discarded, queued items are dropped, and a fresh chain starts at the
requested step. Committed state and context are kept.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Hashable, Iterable
from enum import Enum
from typing import Any, Final, Generic

from whatnow.config import FailurePolicy, WhatNowConfig, WhatNowSettings
from whatnow.errors import StepError, StepTableError, UnknownStepError
from whatnow.internal.queue import SequencerQueue
from whatnow.types import (
    ContextT,
    MachineState,
    MachineStatus,
    Payload,
    StateT,
    StepActions,
    StepHandler,
    StepT,
    StepTable,
    Terminal,
    WorkItem,
    freeze_payload,
)

logger = logging.getLogger(__name__)

# Marks "no step"; None is a valid step identifier.
_NO_STEP: Final[Any] = object()


def _enum_domain(steps: StepTable) -> list[Hashable] | None:
    """Return every member of the Enum the table is keyed by, if any."""

    kinds = {type(key) for key in steps}
    if len(kinds) != 1:
        return None
    (kind,) = kinds
    if not issubclass(kind, Enum):
        return None
    return list(kind)


def check_step_table(steps: StepTable, domain: Iterable[Hashable] | None = None) -> None:
    """Ensure the table has an entry for every step of ``domain``.

    When ``domain`` is omitted and the table is keyed by members of a single
    Enum, the Enum itself is the domain. Otherwise nothing is checked and a
    missing step only surfaces when a chain reaches it.

    Raises:
        StepTableError: listing the steps without an entry.
    """

    expected = list(domain) if domain is not None else _enum_domain(steps)
    if expected is None:
        return
    missing = [step for step in expected if step not in steps]
    if missing:
        raise StepTableError(missing)


class WhatNow(Generic[StepT, StateT, ContextT]):
    """Sequences async step handlers over a shared state and context.

    ``act`` and ``reset`` never block; they must be called while an asyncio
    event loop is running, since processing happens on a task of that loop.
    """

    def __init__(
        self,
        config: WhatNowConfig[StateT, ContextT],
        settings: WhatNowSettings | None = None,
    ) -> None:
        """Initialize the machine.

        Args:
            config: Step table, seeds and callbacks.
            settings: Process-wide settings. If None, loads from environment.
        """
        self.settings = settings or WhatNowSettings()
        check_step_table(config.steps, config.step_domain)

        self._steps: StepTable = config.steps
        self._state: StateT = config.initial_state
        self._context: ContextT = (
            config.initial_context if config.initial_context is not None else {}  # type: ignore[assignment]
        )
        self._on_change = config.on_change
        self._on_error = config.on_error
        self._failure_policy: FailurePolicy = (
            config.failure_policy or self.settings.failure_policy
        )

        self._queue: SequencerQueue[WorkItem[StepT]] = SequencerQueue()
        # Step of the chain currently executing.
        self._processing_step: StepT = _NO_STEP
        # Step a pending reset will restart from.
        self._resetting_step: StepT = _NO_STEP
        self._drain_task: asyncio.Task[None] | None = None
        self._stalled = False
        self._last_error: StepError | None = None
        # Raised by on_error, held until the next wait_idle.
        self._callback_error: Exception | None = None

        self._actions: StepActions[StepT] = StepActions(act=self.act, reset=self.reset)

    @property
    def state(self) -> StateT:
        """The latest committed external state."""
        return self._state

    @property
    def status(self) -> MachineStatus:
        if self._reset_pending:
            return MachineStatus.RESETTING
        if self._stalled:
            return MachineStatus.STALLED
        if self._draining:
            return MachineStatus.RUNNING
        return MachineStatus.IDLE

    @property
    def current_step(self) -> StepT | None:
        """Step whose handler is running, or None between invocations."""
        if self._processing_step is _NO_STEP:
            return None
        return self._processing_step

    @property
    def last_error(self) -> StepError | None:
        return self._last_error

    def act(self, step: StepT, payload: Payload | None = None) -> None:
        """Queue a chain starting at ``step``.

        ``payload`` is handed to the first handler of the chain only. The
        request is dropped silently while a reset is pending.

        Raises:
            RuntimeError: no event loop is running. The machine is left
                untouched.
        """
        loop = asyncio.get_running_loop()
        if self._reset_pending:
            logger.debug(
                "Dropping action while reset is pending",
                extra={"step": step, "reset_step": self._resetting_step},
            )
            return

        item = WorkItem(step=step, payload=freeze_payload(payload))
        if self._queue.enqueue(item):
            self._ensure_draining(loop)
        else:
            logger.debug(
                "Action queued",
                extra={"step": step, "pending": self._queue.pending},
            )

    def reset(self, step: StepT) -> None:
        """Abandon the running chain and restart at ``step``.

        Only the first reset takes effect until its chain has started.

        Raises:
            RuntimeError: no event loop is running. The machine is left
                untouched.
        """
        loop = asyncio.get_running_loop()
        if self._reset_pending:
            logger.debug(
                "Ignoring reset while another reset is pending",
                extra={"step": step, "reset_step": self._resetting_step},
            )
            return

        logger.info(
            "Reset requested",
            extra={"step": step, "interrupted_step": self.current_step},
        )
        self._resetting_step = step
        self._processing_step = _NO_STEP
        self._stalled = False
        self._queue.clear()

        # A running drain enqueues the target once the in-flight call returns.
        if not self._draining:
            self._queue.enqueue(WorkItem(step=step))
            self._ensure_draining(loop)

    async def wait_idle(self) -> None:
        """Wait until no chain is running or queued to run.

        A stalled machine counts as idle. An exception raised by ``on_error``
        since the previous call is re-raised here, once.
        """
        while self._drain_task is not None:
            task = self._drain_task
            await asyncio.shield(task)
            if self._drain_task is task:
                self._drain_task = None

        if self._callback_error is not None:
            error, self._callback_error = self._callback_error, None
            raise error

    @property
    def _draining(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    @property
    def _reset_pending(self) -> bool:
        return self._resetting_step is not _NO_STEP

    def _ensure_draining(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._draining:
            return
        self._drain_task = loop.create_task(self._drain())

    async def _drain(self) -> None:
        try:
            while True:
                item = self._queue.current
                if item is None:
                    if not self._reset_pending:
                        return
                    self._queue.enqueue(WorkItem(step=self._resetting_step))
                    continue

                if self._reset_pending:
                    if item.step != self._resetting_step:
                        self._queue.clear()
                        continue
                    self._resetting_step = _NO_STEP

                try:
                    completed = await self._run_chain(item)
                except StepError as error:
                    self._report_failure(error)
                    if self._reset_pending:
                        continue
                    if self._failure_policy is FailurePolicy.RELEASE:
                        self._queue.done()
                        continue
                    self._stalled = True
                    logger.warning(
                        "Machine stalled until reset",
                        extra={"step": item.step, "pending": self._queue.pending},
                    )
                    return

                if completed and not self._reset_pending:
                    self._queue.done()
        finally:
            self._drain_task = None

    async def _run_chain(self, item: WorkItem[StepT]) -> bool:
        """Run handlers from ``item.step`` until a terminal step.

        Returns:
            False when a reset abandoned the chain.

        Raises:
            StepError: a handler (or ``on_change``) failed.
        """
        step = item.step
        payload = item.payload
        logger.debug("Chain started", extra={"step": step})

        try:
            while True:
                if self._reset_pending:
                    return False

                handler = self._lookup(step)
                if isinstance(handler, Terminal):
                    logger.debug("Chain completed", extra={"step": step})
                    return True

                self._processing_step = step
                result = await handler(
                    MachineState(
                        state=self._state,
                        context=self._context,
                        step=step,
                        payload=payload,
                    ),
                    self._actions,
                )

                if self._reset_pending:
                    logger.debug(
                        "Discarding result superseded by reset",
                        extra={"step": step, "next_step": result.step},
                    )
                    return False

                if result.context is not None:
                    self._context = result.context
                if result.state is not None:
                    self._state = result.state
                    self._on_change()

                step = result.step
                payload = freeze_payload(None)
        except Exception as exc:
            raise StepError.from_exception(exc, step=step)  # noqa: B904
        finally:
            self._processing_step = _NO_STEP

    def _lookup(self, step: StepT) -> StepHandler | Terminal:
        try:
            entry = self._steps[step]
        except KeyError:
            raise UnknownStepError(step) from None
        return entry

    def _report_failure(self, error: StepError) -> None:
        """Record ``error`` and hand it to ``on_error``.

        An exception from ``on_error`` is logged and kept for ``wait_idle``;
        the failure policy still applies to the failed item.
        """
        self._last_error = error
        logger.warning(
            "Step handler failed",
            extra={
                "step": error.step,
                "error_type": type(error.__cause__ or error).__name__,
                "error": str(error),
            },
        )
        try:
            self._on_error(error)
        except Exception as exc:
            logger.exception(
                "Error callback failed",
                extra={"step": error.step, "error_type": type(exc).__name__},
            )
            if self._callback_error is None:
                self._callback_error = exc
