"""Typed event emission for routing and generation.

Components publish what they decide (route chosen, model or backend fallback,
truncation, exhaustion) through an :class:`EventEmitter`. The host application
subscribes if it cares; with no subscribers emission is a no-op.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    ROUTE_DECIDED = "route_decided"
    CLASSIFIER_FAILED = "classifier_failed"
    MODEL_FALLBACK = "model_fallback"
    PROVIDER_FAILED = "provider_failed"
    PROVIDERS_EXHAUSTED = "providers_exhausted"
    RESPONSE_TRUNCATED = "response_truncated"
    GENERATION_COMPLETED = "generation_completed"


@dataclass(frozen=True)
class OrchestratorEvent:
    type: EventType
    source: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


EventHandler = Callable[[OrchestratorEvent], None]


class EventEmitter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[tuple[EventHandler, frozenset[EventType] | None]] = []

    def subscribe(
        self,
        handler: EventHandler,
        event_types: Iterable[EventType] | None = None,
    ) -> Callable[[], None]:
        """Register ``handler``; returns a callable that unsubscribes it.

        With ``event_types`` given, only those events are delivered.
        """
        entry = (handler, frozenset(event_types) if event_types is not None else None)
        with self._lock:
            self._subscribers.append(entry)

        def _unsubscribe() -> None:
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit(self, event_type: EventType, source: str, **data: Any) -> OrchestratorEvent:
        event = OrchestratorEvent(type=event_type, source=source, data=data)
        with self._lock:
            subscribers = list(self._subscribers)
        for handler, wanted in subscribers:
            if wanted is not None and event_type not in wanted:
                continue
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler failed for %s from %s", event_type, source)
        return event
