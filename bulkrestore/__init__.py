"""bulkrestore - restore an application dataset from a portable archive.

Collections are imported one at a time from the archive's JSON array files
into MongoDB, in bounded batches, with per-collection error isolation.

Example:
    from bulkrestore import EventBus, ImportOrchestrator, ImportProgressed, load_config
    from bulkrestore.storage import database_context

    config = load_config()
    bus = EventBus()
    bus.subscribe(ImportProgressed, lambda e: print(e.collection_name, e.progress.current_count))

    with database_context(config) as database:
        orchestrator = ImportOrchestrator(config, database, bus=bus)
        orchestrator.import_archive(
            "backup.zip",
            ["pages", "revisions"],
            [ImportOption(collection_name="pages", mode="upsert"),
             ImportOption(collection_name="revisions", mode="insert")],
            operator_id=None,
        )
"""

from bulkrestore.config import RestoreConfig, load_config
from bulkrestore.errors import RestoreError
from bulkrestore.events import EventBus, ImportEvent, ImportFailed, ImportProgressed, ImportTerminated
from bulkrestore.importing import (
    ImportMode,
    ImportOption,
    ImportOrchestrator,
    ImportSettings,
)
from bulkrestore.version import RESTORE_VERSION

__version__ = RESTORE_VERSION

__all__ = [
    "EventBus",
    "ImportEvent",
    "ImportFailed",
    "ImportMode",
    "ImportOption",
    "ImportOrchestrator",
    "ImportProgressed",
    "ImportSettings",
    "ImportTerminated",
    "RestoreConfig",
    "RestoreError",
    "load_config",
]
