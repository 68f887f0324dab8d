from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from archread.errors import RadError
from archread.pipeline.machine import RetrievalStateMachine
from archread.pipeline.states import State

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunResult:
    state: State
    error: Optional[RadError]
    ticks: int

    @property
    def ok(self) -> bool:
        return self.state is State.DONE


def run_until_done(
    machine: RetrievalStateMachine,
    *,
    sleep: Optional[Callable[[float], None]] = None,
    max_ticks: Optional[int] = None,
) -> RunResult:
    """Drive ``machine`` at its tick period until it reaches a terminal state.

    ``sleep`` paces the ticks; tests pass a no-op to step as fast as possible.
    """
    pause = sleep or time.sleep
    period = machine.settings.tick_ms / 1000.0
    while not machine.done:
        machine.step()
        if machine.done:
            break
        if max_ticks is not None and machine.ticks >= max_ticks:
            logger.debug("Stopping after %d ticks in state %s", machine.ticks, machine.state.value)
            break
        pause(period)
    return RunResult(state=machine.state, error=machine.error, ticks=machine.ticks)
