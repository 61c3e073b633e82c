"""Import run orchestration.

A run moves through ``IDLE → PREPARING → IMPORTING → FINALIZING → IDLE``.
Run-level problems (version mismatch, missing settings, a run already in
progress) are raised before anything is written. A failing collection is
logged, reported as a progress event and skipped; the run carries on with
the next one.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel
from pymongo.database import Database

from bulkrestore.archive.extractor import ArchiveExtractor
from bulkrestore.archive.manifest import ArchiveManifest, ZipFileStat, list_zip_files, parse_zip_file
from bulkrestore.config import RestoreConfig
from bulkrestore.errors import (
    ArchiveError,
    ImportInProgressError,
    ImportingCollectionError,
    ImportSettingsError,
    RestoreError,
    VersionMismatchError,
)
from bulkrestore.events import EventBus
from bulkrestore.lib.log import get_logger
from bulkrestore.paths import is_within_root
from bulkrestore.schema.convert_map import ConvertMap, ConvertMapBuilder
from bulkrestore.schema.registry import SchemaRegistry, default_registry

from .bulk_writer import BulkWriter
from .converter import DocumentConverter
from .overwrite_params import ImportOption
from .pipeline import CollectionImportPipeline
from .plan import PAGES_COLLECTION, build_import_settings
from .progress import ImportingStatus, ProgressTracker
from .settings import ImportSettings

logger = get_logger(__name__)

PageNormalizer = Callable[[Database], None]


class ImportState(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    IMPORTING = "importing"
    FINALIZING = "finalizing"


@dataclass
class ImportRunContext:
    """State of the active run; everything here is dropped when it ends."""

    state: ImportState = ImportState.IDLE
    status: Optional[ImportingStatus] = None
    convert_map: Optional[ConvertMap] = None
    converter: Optional[DocumentConverter] = None
    current_collection: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.state is not ImportState.IDLE

    def begin(self) -> None:
        if self.is_active:
            raise ImportInProgressError(f"An import is already running ({self.state.value})")
        self.state = ImportState.PREPARING

    def release(self) -> None:
        if self.converter is not None:
            self.converter.clear_cache()
        self.converter = None
        self.convert_map = None
        self.status = None
        self.current_collection = None
        self.state = ImportState.IDLE


class ImportStatus(BaseModel):
    is_the_same_version: bool
    zip_file_stat: Optional[ZipFileStat] = None
    is_importing: bool
    progress_list: Optional[list[dict[str, Any]]] = None


class ImportOrchestrator:
    """Restore collections from an extracted archive into ``database``."""

    def __init__(
        self,
        config: RestoreConfig,
        database: Database,
        *,
        registry: Optional[SchemaRegistry] = None,
        bus: Optional[EventBus] = None,
        writer: Optional[BulkWriter] = None,
        extractor: Optional[ArchiveExtractor] = None,
        page_normalizer: Optional[PageNormalizer] = None,
    ) -> None:
        self.config = config
        self.database = database
        if registry is None:
            registry = SchemaRegistry.from_file(config.schema_file) if config.schema_file else default_registry()
        self.registry = registry
        self.bus = bus or EventBus()
        self.writer = writer or BulkWriter()
        self.extractor = extractor or ArchiveExtractor(meta_file_name=config.meta_file_name)
        self.page_normalizer = page_normalizer
        self.context = ImportRunContext()

    @property
    def base_dir(self) -> Path:
        return self.config.work_dir

    def get_file(self, file_name: str) -> Path:
        path = self.base_dir / file_name
        if not is_within_root(path, self.base_dir):
            raise ArchiveError(f"{file_name!r} is outside the working directory")
        if not path.is_file():
            raise ArchiveError(f"{file_name} does not exist in {self.base_dir}")
        return path

    def validate(self, manifest: ArchiveManifest) -> None:
        """All criteria must hold for an archive to be importable.

        - the running version equals the version that exported the data
        """
        if manifest.version != self.config.app_version:
            raise VersionMismatchError(manifest.version, self.config.app_version)

    def get_status(self) -> ImportStatus:
        # serially, so only one archive's listing is held at a time
        zip_file_stats: list[ZipFileStat] = []
        for zip_path in list_zip_files(self.base_dir):
            stat = parse_zip_file(zip_path, self.config.meta_file_name)
            if stat is not None:
                zip_file_stats.append(stat)
        zip_file_stats.sort(key=lambda stat: stat.ctime)
        latest = zip_file_stats[-1] if zip_file_stats else None

        is_the_same_version = False
        if latest is not None:
            try:
                self.validate(latest.meta)
                is_the_same_version = True
            except VersionMismatchError as exc:
                logger.error("archive_version_mismatch", archive=latest.file_name, error=str(exc))

        status = self.context.status
        return ImportStatus(
            is_the_same_version=is_the_same_version,
            zip_file_stat=latest,
            is_importing=self.context.is_active,
            progress_list=[progress.as_dict() for progress in status.progress_list] if status else None,
        )

    def unzip(self, zip_path: Path) -> list[Path]:
        return self.extractor.extract(zip_path, self.base_dir)

    def delete_all_zip_files(self) -> None:
        for zip_path in list_zip_files(self.base_dir):
            zip_path.unlink()
            logger.info("archive_deleted", archive=zip_path.name)

    def import_archive(
        self,
        file_name: str,
        collections: Sequence[str],
        options: Iterable[ImportOption],
        operator_id: ObjectId | str | None,
    ) -> None:
        """Validate, extract and import an uploaded archive.

        Failures before the import starts are reported as ``ImportFailed``
        events and raised.
        """
        if self.context.is_active:
            raise ImportInProgressError("An import is already running")
        tracker = ProgressTracker(self.bus)
        try:
            zip_path = self.get_file(file_name)
            zip_stat = parse_zip_file(zip_path, self.config.meta_file_name)
            if zip_stat is None:
                raise ArchiveError(f"{file_name} is not a readable archive")
            self.validate(zip_stat.meta)
            settings_map = build_import_settings(
                zip_stat,
                collections,
                options,
                operator_id,
                normalize_pages=self.config.normalize_pages,
            )
            self.unzip(zip_path)
        except RestoreError as exc:
            logger.error("import_rejected", archive=file_name, error=str(exc))
            tracker.fail(str(exc))
            raise

        names = [name for name in collections if name in settings_map]
        self.import_collections(names, settings_map, manifest=zip_stat.meta)

    def import_collections(
        self,
        collection_names: Sequence[str],
        settings_map: Mapping[str, ImportSettings],
        *,
        manifest: ArchiveManifest,
    ) -> None:
        """Import the named collections serially.

        Raises:
            ImportInProgressError: Another run is active.
            VersionMismatchError: The archive version differs from ours.
            ImportSettingsError: A collection has no settings.
        """
        self.context.begin()
        try:
            # first occurrence wins
            names = list(dict.fromkeys(collection_names))
            self._prepare(names, settings_map, manifest)
            tracker = ProgressTracker(self.bus)
            self._import_all(names, settings_map, tracker)
            self._finalize(names, tracker)
        finally:
            self.context.release()

    def _prepare(self, names: list[str], settings_map: Mapping[str, ImportSettings], manifest: ArchiveManifest) -> None:
        self.validate(manifest)
        missing = [name for name in names if name not in settings_map]
        if missing:
            raise ImportSettingsError(f"ImportSettings for {', '.join(missing)} is not found")

        self.context.convert_map = ConvertMapBuilder(self.registry).build()
        self.context.converter = DocumentConverter(self.context.convert_map, self.registry)
        self.context.status = ImportingStatus(names)
        logger.info("import_prepared", collections=names, version=manifest.version)

    def _import_all(self, names: list[str], settings_map: Mapping[str, ImportSettings], tracker: ProgressTracker) -> None:
        converter, status = self.context.converter, self.context.status
        if converter is None or status is None:
            raise RuntimeError("Something went wrong: the import run is not prepared")
        self.context.state = ImportState.IMPORTING
        pipeline = CollectionImportPipeline(
            self.database,
            converter,
            self.writer,
            tracker,
            self.base_dir,
            batch_size=self.config.batch_size,
        )
        # serially, to bound memory to one collection's batch
        for name in names:
            self.context.current_collection = name
            progress = status.progress_map[name]
            try:
                pipeline.run(name, settings_map[name], progress)
            except ImportingCollectionError as exc:
                logger.error(
                    "collection_import_failed",
                    collection=name,
                    processed=exc.collection_progress.current_count,
                    error=str(exc),
                    error_type=type(exc.cause).__name__,
                )
                tracker.update(exc.collection_progress, [{"message": str(exc)}])

    def _finalize(self, names: list[str], tracker: ProgressTracker) -> None:
        self.context.state = ImportState.FINALIZING
        try:
            normalizer = self.page_normalizer
            if normalizer is not None and self._should_normalize_pages(names):
                logger.info("pages_normalization_started")
                normalizer(self.database)
        finally:
            self.context.release()
            tracker.terminate()

    def _should_normalize_pages(self, names: list[str]) -> bool:
        return PAGES_COLLECTION in names and self.config.normalize_pages and self.page_normalizer is not None


__all__ = ["ImportOrchestrator", "ImportRunContext", "ImportState", "ImportStatus", "PageNormalizer"]
