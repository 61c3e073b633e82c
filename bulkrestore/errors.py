"""bulkrestore error hierarchy.

All project exceptions inherit from RestoreError, enabling:
- ``except RestoreError`` at top-level boundaries (CLI, trigger callers)
- Fine-grained catches deeper in the stack (``except ImportingCollectionError``)

Hierarchy:
    RestoreError
    ├── ConfigError
    ├── ArchiveError
    ├── VersionMismatchError               # run-level, raised before any write
    ├── ImportSettingsError
    ├── ImportInProgressError              # run-level
    ├── ConversionError
    │   ├── FieldCastError
    │   └── RecordShapeError
    ├── BulkWriteExecutionError            # collection-level
    └── ImportingCollectionError           # wraps any collection-level failure
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bulkrestore.importing.progress import CollectionProgress


class RestoreError(Exception):
    """Base class for all bulkrestore errors."""


class ConfigError(RestoreError):
    """Invalid or unreadable configuration."""


class ArchiveError(RestoreError):
    """The archive or a file in the working directory cannot be used."""


class VersionMismatchError(RestoreError):
    """The archive was exported by a different application version."""

    def __init__(self, archive_version: str | None, running_version: str) -> None:
        super().__init__(
            f"The version of this application ({running_version}) and the archive "
            f"({archive_version}) are not the same"
        )
        self.archive_version = archive_version
        self.running_version = running_version


class ImportSettingsError(RestoreError):
    """Import settings are missing or not allowed for a collection."""


class ImportInProgressError(RestoreError):
    """An import run is already active."""


class ConversionError(RestoreError):
    """A record could not be converted into a document."""


class FieldCastError(ConversionError):
    """A field value cannot be cast to its declared type."""

    def __init__(self, collection_name: str | None, field_name: str, expected: str, value: object) -> None:
        preview = repr(value)
        if len(preview) > 80:
            preview = preview[:77] + "..."
        where = f"{collection_name}.{field_name}" if collection_name else field_name
        super().__init__(f"Cannot cast {where} to {expected}: {preview}")
        self.collection_name = collection_name
        self.field_name = field_name
        self.expected = expected


class RecordShapeError(ConversionError):
    """A record in the source file is not a JSON object."""


class BulkWriteExecutionError(RestoreError):
    """A bulk write failed in a way that is not a partial-failure result."""


class ImportingCollectionError(RestoreError):
    """Importing one collection failed; carries the progress made so far."""

    def __init__(self, collection_progress: CollectionProgress, cause: BaseException) -> None:
        super().__init__(str(cause) or type(cause).__name__)
        self.collection_progress = collection_progress
        self.cause = cause


__all__ = [
    "ArchiveError",
    "BulkWriteExecutionError",
    "ConfigError",
    "ConversionError",
    "FieldCastError",
    "ImportInProgressError",
    "ImportSettingsError",
    "ImportingCollectionError",
    "RecordShapeError",
    "RestoreError",
    "VersionMismatchError",
]
