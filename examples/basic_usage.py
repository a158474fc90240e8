#!/usr/bin/env python3
"""Programmatic step machine example.

This demonstrates driving a small order workflow:

* load settings from `.env` and configure structured logging
* queue a chain with a payload and let it run to its terminal step
* restart from a different step with `reset`

The failing step is opt-in (``--fail``) to show the stall/recovery path.
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Sequence

from whatnow import (
    TERMINAL,
    MachineState,
    StepActions,
    StepError,
    StepResult,
    WhatNow,
    WhatNowConfig,
    WhatNowSettings,
)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a sample order workflow.")
    parser.add_argument("--items", type=int, default=3, help="Number of items to order")
    parser.add_argument(
        "--fail",
        action="store_true",
        help="Make the payment step fail, then recover with reset",
    )
    return parser.parse_args(argv)


def _build_steps(fail: bool) -> dict[str, object]:
    async def reserve(machine: MachineState, _actions: StepActions) -> StepResult:
        items = int(machine.payload.get("items", 1))
        return StepResult(
            step="pay",
            state={**machine.state, "items": items, "status": "reserved"},
            context={"reservation": f"res-{items}"},
        )

    async def pay(machine: MachineState, _actions: StepActions) -> StepResult:
        await asyncio.sleep(0.01)
        if fail and machine.state.get("status") == "reserved":
            raise ConnectionError("payment gateway unavailable")
        return StepResult(step="ship", state={**machine.state, "status": "paid"})

    async def ship(machine: MachineState, _actions: StepActions) -> StepResult:
        return StepResult(
            step="done",
            state={**machine.state, "status": "shipped"},
            context={},
        )

    async def retry_payment(machine: MachineState, _actions: StepActions) -> StepResult:
        return StepResult(step="pay", state={**machine.state, "status": "retrying"})

    return {
        "reserve": reserve,
        "pay": pay,
        "ship": ship,
        "retry_payment": retry_payment,
        "done": TERMINAL,
    }


async def _run(args: argparse.Namespace, settings: WhatNowSettings) -> int:
    errors: list[StepError] = []
    machine: WhatNow[str, dict[str, object], dict[str, object]]

    def on_change() -> None:
        print(f"state: {machine.state}")

    machine = WhatNow(
        WhatNowConfig(
            steps=_build_steps(args.fail),
            initial_state={"items": 0, "status": "new"},
            on_change=on_change,
            on_error=errors.append,
        ),
        settings=settings,
    )

    machine.act("reserve", {"items": args.items})
    await machine.wait_idle()

    if errors:
        print(f"Machine {machine.status.value}: {errors[-1]}")
        machine.reset("retry_payment")
        await machine.wait_idle()

    print(f"Final status: {machine.state.get('status')}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = WhatNowSettings()
    settings.setup_logging()

    return asyncio.run(_run(args, settings))


if __name__ == "__main__":
    raise SystemExit(main())
