"""Per-collection progress counters and the events that report them."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, replace
from typing import Any, Optional

from bulkrestore.events import EventBus, ImportFailed, ImportProgressed, ImportTerminated
from bulkrestore.lib.log import get_logger

logger = get_logger(__name__)


@dataclass
class CollectionProgress:
    """Counters for one collection; they only ever grow during a run."""

    collection_name: str
    current_count: int = 0
    total_count: int = 0
    inserted_count: int = 0
    modified_count: int = 0
    failed_count: int = 0

    def record_batch(self, processed: int, inserted: int, modified: int, failed: int) -> None:
        if min(processed, inserted, modified, failed) < 0:
            raise ValueError("progress counters cannot decrease")
        self.current_count += processed
        self.total_count += processed
        self.inserted_count += inserted
        self.modified_count += modified
        self.failed_count += failed

    def snapshot(self) -> "CollectionProgress":
        return replace(self)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class ImportingStatus:
    """Progress of every collection requested in the active run."""

    def __init__(self, collection_names: Iterable[str]) -> None:
        self.progress_map: dict[str, CollectionProgress] = {
            name: CollectionProgress(collection_name=name) for name in collection_names
        }

    @property
    def progress_list(self) -> list[CollectionProgress]:
        return list(self.progress_map.values())


class ProgressTracker:
    """Relay progress state to event bus subscribers."""

    def __init__(self, bus: EventBus) -> None:
        self.bus = bus
        self._terminated = False

    def update(
        self,
        progress: CollectionProgress,
        errors: Optional[Iterable[Mapping[str, Any]]] = None,
    ) -> None:
        self.bus.emit(
            ImportProgressed(
                collection_name=progress.collection_name,
                progress=progress.snapshot(),
                errors=tuple(dict(error) for error in errors or ()),
            )
        )

    def fail(self, message: str) -> None:
        self.bus.emit(ImportFailed(message=message))

    def terminate(self) -> None:
        if self._terminated:
            logger.warning("import_already_terminated")
            return
        self._terminated = True
        self.bus.emit(ImportTerminated())


__all__ = ["CollectionProgress", "ImportingStatus", "ProgressTracker"]
