from .machine import RetrievalStateMachine
from .observability import ObserverRegistry, RetrievalEvent, chain, default_observer_registry
from .runner import RunResult, run_until_done
from .states import State

__all__ = [
    "ObserverRegistry",
    "RetrievalEvent",
    "RetrievalStateMachine",
    "RunResult",
    "State",
    "chain",
    "default_observer_registry",
    "run_until_done",
]
