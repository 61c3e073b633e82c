import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from bulkrestore.config import RestoreConfig
from bulkrestore.events import EventBus, ImportEvent, ImportFailed, ImportProgressed, ImportTerminated
from tests.helpers import APP_VERSION, write_archive
from tests.mocks import MockDatabase


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    path = tmp_path / "imports"
    path.mkdir()
    return path


@pytest.fixture
def config(work_dir: Path, monkeypatch) -> RestoreConfig:
    for name in ("BULKRESTORE_CONFIG", "BULKRESTORE_BATCH_SIZE", "BULKRESTORE_NORMALIZE_PAGES"):
        monkeypatch.delenv(name, raising=False)
    return RestoreConfig(work_dir=work_dir, app_version=APP_VERSION, batch_size=100)


@pytest.fixture
def database() -> MockDatabase:
    return MockDatabase()


class EventRecorder:
    """Collect every event emitted on a bus."""

    def __init__(self, bus: EventBus) -> None:
        self.events: list[ImportEvent] = []
        bus.subscribe(ImportEvent, self.events.append)

    def of_type(self, event_type: type) -> list[Any]:
        return [event for event in self.events if isinstance(event, event_type)]

    @property
    def progressed(self) -> list[ImportProgressed]:
        return self.of_type(ImportProgressed)

    @property
    def failed(self) -> list[ImportFailed]:
        return self.of_type(ImportFailed)

    @property
    def terminated(self) -> list[ImportTerminated]:
        return self.of_type(ImportTerminated)

    def for_collection(self, name: str) -> list[ImportProgressed]:
        return [event for event in self.progressed if event.collection_name == name]


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(bus: EventBus) -> EventRecorder:
    return EventRecorder(bus)


@pytest.fixture
def make_archive(work_dir: Path) -> Callable[..., Path]:
    def _make(file_name: str = "backup.zip", collections: dict[str, Any] | None = None, **kwargs: Any) -> Path:
        return write_archive(work_dir / file_name, collections or {}, **kwargs)

    return _make
