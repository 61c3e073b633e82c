"""Import one collection from its extracted JSON array file.

Stages, chained as generators so that at most one batch is resident:

    file (binary) → ijson records → converted documents → batches → bulk write

The write is synchronous; the next record is only parsed once the current
batch has been written.
"""

from __future__ import annotations

import gc
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import ijson
from pymongo.database import Database

from bulkrestore.errors import ImportingCollectionError, ImportSettingsError
from bulkrestore.lib.log import get_logger
from bulkrestore.paths import is_within_root

from .batching import BULK_IMPORT_SIZE, iter_batches
from .bulk_writer import BulkWriter
from .converter import DocumentConverter
from .progress import CollectionProgress, ProgressTracker
from .settings import ImportMode, ImportSettings

logger = get_logger(__name__)

# Collections that may only be replaced as a whole.
FLUSH_ONLY_COLLECTIONS = frozenset({"configs"})


def validate_import_settings(collection_name: str, settings: ImportSettings) -> None:
    if collection_name in FLUSH_ONLY_COLLECTIONS and settings.mode is not ImportMode.FLUSH_AND_INSERT:
        raise ImportSettingsError(
            f"The specified mode '{settings.mode.value}' is not allowed when importing to '{collection_name}' collection."
        )


class CollectionImportPipeline:
    def __init__(
        self,
        database: Database,
        converter: DocumentConverter,
        writer: BulkWriter,
        tracker: ProgressTracker,
        work_dir: Path,
        batch_size: int = BULK_IMPORT_SIZE,
    ) -> None:
        self.database = database
        self.converter = converter
        self.writer = writer
        self.tracker = tracker
        self.work_dir = work_dir
        self.batch_size = batch_size

    def source_path(self, settings: ImportSettings) -> Path:
        path = self.work_dir / settings.source_file_name
        if not is_within_root(path, self.work_dir):
            raise ImportSettingsError(f"Source file {settings.source_file_name!r} is outside the working directory")
        return path

    def _iter_documents(self, handle: Any, collection_name: str, settings: ImportSettings) -> Iterator[dict[str, Any]]:
        for record in ijson.items(handle, "item", use_float=True):
            yield self.converter.convert(collection_name, record, settings.overwrite_params)

    def run(self, collection_name: str, settings: ImportSettings, progress: CollectionProgress) -> None:
        """Import the collection, reporting progress after every batch.

        Raises:
            ImportingCollectionError: wrapping whatever stopped this collection,
                together with the progress made until then.
        """
        try:
            collection = self.database[collection_name]
            source = self.source_path(settings)
            validate_import_settings(collection_name, settings)

            if settings.mode is ImportMode.FLUSH_AND_INSERT:
                collection.delete_many({})
                logger.info("collection_flushed", collection=collection_name)

            with source.open("rb") as handle:
                documents = self._iter_documents(handle, collection_name, settings)
                for batch in iter_batches(documents, self.batch_size):
                    outcome = self.writer.write(collection, batch, collection_name, settings)
                    progress.record_batch(
                        processed=len(batch),
                        inserted=outcome.reported_inserted(settings.mode),
                        modified=outcome.reported_modified(settings.mode),
                        failed=outcome.error_count,
                    )
                    self.tracker.update(progress, [error.as_dict() for error in outcome.errors])
                    del batch
                    # Reclaim per-batch garbage before parsing further.
                    gc.collect(0)

            logger.info(
                "collection_imported",
                collection=collection_name,
                processed=progress.current_count,
                inserted=progress.inserted_count,
                modified=progress.modified_count,
                failed=progress.failed_count,
            )
            if progress.current_count == 0:
                logger.info("collection_empty", collection=collection_name)
                self.tracker.update(progress, None)
        except Exception as exc:
            raise ImportingCollectionError(progress.snapshot(), exc) from exc

        # all batches are committed here
        try:
            source.unlink()
        except OSError as exc:
            logger.warning("source_cleanup_failed", collection=collection_name, path=str(source), error=str(exc))


__all__ = ["CollectionImportPipeline", "FLUSH_ONLY_COLLECTIONS", "validate_import_settings"]
