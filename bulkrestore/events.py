"""Structured event bus for the import lifecycle.

Provides typed event classes for progress reporting and a central
``EventBus`` for subscription and dispatch.

Event hierarchy (all frozen dataclasses):

    ImportEvent (base)
    ├── ImportProgressed: emitted after each committed batch of a collection
    ├── ImportFailed    : emitted when a run fails before importing
    └── ImportTerminated: emitted once when a run ends

Usage::

    bus = EventBus()
    bus.subscribe(ImportProgressed, my_handler)
    orchestrator = ImportOrchestrator(config, database, bus=bus)

Handlers are called synchronously in subscription order.  Exceptions in
a handler are logged but do not prevent subsequent handlers from running.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional, TypeVar

from bulkrestore.lib.log import get_logger

if TYPE_CHECKING:
    from bulkrestore.importing.progress import CollectionProgress

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

E = TypeVar("E", bound="ImportEvent")


@dataclass(frozen=True)
class ImportEvent:
    """Base class for all import events."""

    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))


@dataclass(frozen=True)
class ImportProgressed(ImportEvent):
    """Emitted after a batch commits, or when a collection finishes or fails.

    ``progress`` is a snapshot; later batches never mutate it.
    """

    collection_name: str = ""
    progress: Optional[CollectionProgress] = None
    errors: tuple[dict[str, Any], ...] = ()


@dataclass(frozen=True)
class ImportFailed(ImportEvent):
    """Emitted when a run fails before any collection is imported."""

    message: str = ""


@dataclass(frozen=True)
class ImportTerminated(ImportEvent):
    """Emitted once after every requested collection has been attempted."""


# ---------------------------------------------------------------------------
# Event Bus
# ---------------------------------------------------------------------------

EventHandler = Callable[[Any], None]


class EventBus:
    """Central event dispatcher.

    Handlers receive only events of the exact type they subscribed to;
    subscribe to ``ImportEvent`` to receive *all* events.

    The bus is designed for the single-threaded import run.
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        """Register a handler for a specific event type."""
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        """Remove a previously registered handler.

        No-op if the handler was not registered.
        """
        handlers = self._handlers.get(event_type)
        if handlers:
            with suppress(ValueError):
                handlers.remove(handler)

    def emit(self, event: ImportEvent) -> None:
        """Dispatch an event to exact-type handlers, then wildcard handlers."""
        event_type = type(event)

        for handler in self._handlers.get(event_type, ()):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "event_handler_failed",
                    handler=getattr(handler, "__name__", repr(handler)),
                    event_type=event_type.__name__,
                )

        if event_type is not ImportEvent:
            for handler in self._handlers.get(ImportEvent, ()):
                try:
                    handler(event)
                except Exception:
                    logger.exception(
                        "wildcard_handler_failed",
                        handler=getattr(handler, "__name__", repr(handler)),
                        event_type=event_type.__name__,
                    )

    @property
    def handler_count(self) -> int:
        """Total number of registered handlers across all event types."""
        return sum(len(h) for h in self._handlers.values())


__all__ = [
    "EventBus",
    "EventHandler",
    "ImportEvent",
    "ImportFailed",
    "ImportProgressed",
    "ImportTerminated",
]
