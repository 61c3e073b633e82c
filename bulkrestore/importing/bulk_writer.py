"""Unordered bulk writes with partial-failure decoding.

One batch becomes one ``bulk_write(..., ordered=False)`` call: a failing
document never prevents its siblings from being written. When the server
reports per-document write errors, pymongo raises ``BulkWriteError`` whose
``details`` carry the same counters as a successful result plus the list of
``writeErrors``; that shape is decoded into a ``BulkOutcome`` instead of
failing the batch.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from pymongo import InsertOne, ReplaceOne
from pymongo.collection import Collection
from pymongo.errors import BulkWriteError, PyMongoError
from pymongo.results import BulkWriteResult

from bulkrestore.errors import BulkWriteExecutionError
from bulkrestore.lib.log import get_logger

from .settings import ImportMode, ImportSettings

logger = get_logger(__name__)

# Natural key used to match existing documents in upsert mode.
UPSERT_KEYS: Mapping[str, str] = {"pages": "path"}
DEFAULT_UPSERT_KEY = "_id"

WriteOperation = Union[InsertOne, ReplaceOne]


@dataclass(frozen=True)
class WriteErrorDetail:
    index: int
    code: int | None
    message: str

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "WriteErrorDetail":
        return cls(
            index=int(raw.get("index", -1)),
            code=raw.get("code"),
            message=str(raw.get("errmsg") or raw.get("message") or ""),
        )

    def as_dict(self) -> dict[str, Any]:
        return {"index": self.index, "code": self.code, "message": self.message}


@dataclass(frozen=True)
class BulkOutcome:
    inserted_count: int = 0
    modified_count: int = 0
    upserted_count: int = 0
    matched_count: int = 0
    errors: tuple[WriteErrorDetail, ...] = ()

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @classmethod
    def from_result(cls, result: BulkWriteResult) -> "BulkOutcome":
        return cls(
            inserted_count=result.inserted_count,
            modified_count=result.modified_count,
            upserted_count=result.upserted_count,
            matched_count=result.matched_count,
        )

    @classmethod
    def from_details(cls, details: Mapping[str, Any]) -> "BulkOutcome":
        raw_errors = details.get("writeErrors") or []
        if isinstance(raw_errors, Mapping):
            raw_errors = [raw_errors]
        return cls(
            inserted_count=details.get("nInserted", 0),
            modified_count=details.get("nModified", 0),
            upserted_count=details.get("nUpserted", 0),
            matched_count=details.get("nMatched", 0),
            errors=tuple(WriteErrorDetail.from_raw(error) for error in raw_errors),
        )

    def reported_inserted(self, mode: ImportMode) -> int:
        # An upsert that created a document counts as an insert.
        return self.upserted_count if mode is ImportMode.UPSERT else self.inserted_count

    def reported_modified(self, mode: ImportMode) -> int:
        # An upsert that matched an existing document counts as a modification,
        # even when the replacement left it unchanged.
        return self.matched_count if mode is ImportMode.UPSERT else self.modified_count


def _is_partial_failure(details: Any) -> bool:
    return isinstance(details, Mapping) and "writeErrors" in details


class BulkWriter:
    """Write a batch of converted documents to one collection."""

    def __init__(
        self,
        upsert_keys: Mapping[str, str] = UPSERT_KEYS,
        default_upsert_key: str = DEFAULT_UPSERT_KEY,
    ) -> None:
        self.upsert_keys = upsert_keys
        self.default_upsert_key = default_upsert_key

    def upsert_key(self, collection_name: str) -> str:
        return self.upsert_keys.get(collection_name, self.default_upsert_key)

    def build_operations(
        self,
        batch: Sequence[dict[str, Any]],
        collection_name: str,
        settings: ImportSettings,
    ) -> list[WriteOperation]:
        if settings.mode is not ImportMode.UPSERT:
            return [InsertOne(document) for document in batch]
        key = self.upsert_key(collection_name)
        return [ReplaceOne({key: document.get(key)}, document, upsert=True) for document in batch]

    def write(
        self,
        collection: Collection,
        batch: Sequence[dict[str, Any]],
        collection_name: str,
        settings: ImportSettings,
    ) -> BulkOutcome:
        if not batch:
            return BulkOutcome()
        operations = self.build_operations(batch, collection_name, settings)
        try:
            result = collection.bulk_write(operations, ordered=False)
        except BulkWriteError as exc:
            if not _is_partial_failure(exc.details):
                logger.error("bulk_write_unhandled", collection=collection_name, error=str(exc))
                raise BulkWriteExecutionError(
                    f"Failed to execute bulk write on {collection_name} and the error could not be handled"
                ) from exc
            outcome = BulkOutcome.from_details(exc.details)
        except PyMongoError as exc:
            logger.error("bulk_write_failed", collection=collection_name, error=str(exc))
            raise BulkWriteExecutionError(f"Failed to execute bulk write on {collection_name}: {exc}") from exc
        else:
            outcome = BulkOutcome.from_result(result)

        logger.debug(
            "bulk_write_executed",
            collection=collection_name,
            inserted=outcome.reported_inserted(settings.mode),
            modified=outcome.reported_modified(settings.mode),
            failed=outcome.error_count,
            raw_inserted=outcome.inserted_count,
            raw_modified=outcome.modified_count,
            raw_upserted=outcome.upserted_count,
            raw_matched=outcome.matched_count,
        )
        return outcome


__all__ = [
    "BulkOutcome",
    "BulkWriter",
    "DEFAULT_UPSERT_KEY",
    "UPSERT_KEYS",
    "WriteErrorDetail",
    "WriteOperation",
]
