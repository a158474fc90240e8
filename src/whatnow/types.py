"""Public types used to describe a step machine.

A workflow is a table mapping each step to either an async handler or the
``TERMINAL`` marker. Handlers receive a read-only snapshot of the machine and a
set of explicit capabilities (``act``/``reset``), and return the next step plus
optional state/context replacements.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Hashable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Final, Generic, Protocol, TypeAlias, TypeVar, final

StepT = TypeVar("StepT", bound=Hashable)
StepT_contra = TypeVar("StepT_contra", bound=Hashable, contravariant=True)
StateT = TypeVar("StateT")
ContextT = TypeVar("ContextT")

Payload: TypeAlias = Mapping[str, Any]

_EMPTY_PAYLOAD: Final[Payload] = MappingProxyType({})


@final
class Terminal:
    """Marker for steps that end a chain without invoking anything."""

    _instance: Terminal | None = None

    def __new__(cls) -> Terminal:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "TERMINAL"


TERMINAL: Final = Terminal()


class MachineStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    RESETTING = "resetting"
    STALLED = "stalled"


@dataclass(frozen=True, slots=True)
class WorkItem(Generic[StepT]):
    """A queued request to run the chain starting at ``step``."""

    step: StepT
    payload: Payload = field(default_factory=lambda: _EMPTY_PAYLOAD)


@dataclass(frozen=True, slots=True)
class MachineState(Generic[StepT, StateT, ContextT]):
    """Snapshot handed to a handler invocation.

    ``payload`` is only populated for the first invocation of a chain.
    """

    state: StateT
    context: ContextT
    step: StepT
    payload: Payload = field(default_factory=lambda: _EMPTY_PAYLOAD)


class ActFunction(Protocol[StepT_contra]):
    """Signature of ``act``: a step plus an optional payload for its first handler."""

    def __call__(self, step: StepT_contra, payload: Payload | None = None) -> None: ...


@dataclass(frozen=True, slots=True)
class StepActions(Generic[StepT]):
    """Capabilities a handler may use to request further work."""

    act: ActFunction[StepT]
    reset: Callable[[StepT], None]


@dataclass(frozen=True, slots=True)
class StepResult(Generic[StepT, StateT, ContextT]):
    """Value returned by a handler.

    ``state`` and ``context`` replace the machine's values when not ``None``.
    """

    step: StepT
    state: StateT | None = None
    context: ContextT | None = None


StepHandler: TypeAlias = Callable[
    [MachineState[Any, Any, Any], StepActions[Any]],
    Awaitable[StepResult[Any, Any, Any]],
]

StepTable: TypeAlias = Mapping[Any, StepHandler | Terminal]


def freeze_payload(payload: Payload | None) -> Payload:
    if not payload:
        return _EMPTY_PAYLOAD
    return MappingProxyType(dict(payload))
