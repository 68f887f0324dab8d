from __future__ import annotations

from enum import Enum


class State(str, Enum):
    SETUP = "setup"
    INITIAL_DELAY = "initial_delay"
    AWAIT_READY = "await_ready"
    BEGIN_CHANNEL = "begin_channel"
    SEND_PAGE = "send_page"
    AWAIT_PAGE = "await_page"
    FINALIZE = "finalize"
    DONE = "done"
    ERROR_EXIT = "error_exit"

    @property
    def terminal(self) -> bool:
        return self in (State.DONE, State.ERROR_EXIT)
