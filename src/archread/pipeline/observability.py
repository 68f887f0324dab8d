from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional


@dataclass(frozen=True)
class RetrievalEvent:
    type: str
    payload: Mapping[str, object]


# Observer receives a structured event.
Observer = Callable[[RetrievalEvent], None]
# Factory builds an observer for a given logger (may return None if not active at current level).
ObserverFactory = Callable[[logging.Logger], Optional[Observer]]


class ObserverRegistry:
    def __init__(self, factories: Optional[Mapping[str, ObserverFactory]] = None) -> None:
        self._factories: dict[str, ObserverFactory] = dict(factories or {})

    def register(self, name: str, factory: ObserverFactory) -> None:
        self._factories[name] = factory

    def get(self, name: str, logger: logging.Logger) -> Optional[Observer]:
        factory = self._factories.get(name)
        if not factory:
            return None
        return factory(logger)


def chain(observers: Iterable[Optional[Observer]]) -> Optional[Observer]:
    """Combine observers into one; None entries are skipped."""
    active = [obs for obs in observers if obs is not None]
    if not active:
        return None
    if len(active) == 1:
        return active[0]

    def _observer(event: RetrievalEvent) -> None:
        for obs in active:
            obs(event)

    return _observer


def _page_debug_observer_factory(logger: logging.Logger) -> Optional[Observer]:
    if not logger.isEnabledFor(logging.DEBUG):
        return None

    def _observer(event: RetrievalEvent) -> None:
        if event.type != "page_received":
            return
        logger.debug(
            "Page detail: channel=%s page=%s count=%s cursor=%s",
            event.payload.get("channel"),
            event.payload.get("page"),
            event.payload.get("count"),
            event.payload.get("cursor"),
        )

    return _observer


def default_observer_registry() -> ObserverRegistry:
    registry = ObserverRegistry()
    registry.register("pages", _page_debug_observer_factory)
    return registry
