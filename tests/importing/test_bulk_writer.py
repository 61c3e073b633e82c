"""Unordered bulk writes and decoding of partial failures."""

from __future__ import annotations

import pytest
from bson import ObjectId
from pymongo import InsertOne, ReplaceOne
from pymongo.errors import AutoReconnect, BulkWriteError

from bulkrestore.errors import BulkWriteExecutionError
from bulkrestore.importing.bulk_writer import BulkOutcome, BulkWriter, WriteErrorDetail
from bulkrestore.importing.settings import ImportMode, ImportSettings
from tests.mocks import DOCUMENT_VALIDATION_FAILURE, DUPLICATE_KEY, MockCollection


def _settings(mode: ImportMode) -> ImportSettings:
    return ImportSettings(mode=mode, source_file_name="x.json")


def _docs(count: int, **fields):
    return [{"_id": ObjectId(), "n": i, **fields} for i in range(count)]


class TestBuildOperations:
    def test_insert_modes_use_insert_one(self):
        writer = BulkWriter()
        for mode in (ImportMode.INSERT, ImportMode.FLUSH_AND_INSERT):
            operations = writer.build_operations(_docs(2), "revisions", _settings(mode))
            assert all(isinstance(op, InsertOne) for op in operations)

    def test_upsert_matches_pages_by_path(self):
        document = {"_id": ObjectId(), "path": "/a"}

        (operation,) = BulkWriter().build_operations([document], "pages", _settings(ImportMode.UPSERT))

        assert operation == ReplaceOne({"path": "/a"}, document, upsert=True)

    def test_upsert_defaults_to_id(self):
        document = {"_id": ObjectId(), "name": "x"}

        (operation,) = BulkWriter().build_operations([document], "tags", _settings(ImportMode.UPSERT))

        assert operation == ReplaceOne({"_id": document["_id"]}, document, upsert=True)

    def test_custom_upsert_keys(self):
        writer = BulkWriter(upsert_keys={"users": "username"})
        assert writer.upsert_key("users") == "username"
        assert writer.upsert_key("pages") == "_id"


class TestWrite:
    def test_empty_batch_does_not_call_server(self):
        collection = MockCollection(name="tags")

        outcome = BulkWriter().write(collection, [], "tags", _settings(ImportMode.INSERT))

        assert outcome == BulkOutcome()
        assert collection.bulk_calls == []

    def test_insert_success(self):
        collection = MockCollection(name="revisions")

        outcome = BulkWriter().write(collection, _docs(5), "revisions", _settings(ImportMode.INSERT))

        assert outcome.inserted_count == 5
        assert outcome.error_count == 0
        assert outcome.reported_inserted(ImportMode.INSERT) == 5
        assert len(collection.documents) == 5

    def test_partial_failure_is_decoded(self):
        collection = MockCollection(name="revisions", reject=lambda doc: doc["n"] == 3)

        outcome = BulkWriter().write(collection, _docs(10), "revisions", _settings(ImportMode.INSERT))

        assert outcome.inserted_count == 9
        assert outcome.errors == (
            WriteErrorDetail(index=3, code=DOCUMENT_VALIDATION_FAILURE, message="Document failed validation"),
        )
        # unordered: the documents after the failing one are written
        assert len(collection.documents) == 9

    def test_duplicate_id_reported_per_document(self):
        docs = _docs(3)
        collection = MockCollection(name="tags", documents=[dict(docs[1])])

        outcome = BulkWriter().write(collection, docs, "tags", _settings(ImportMode.INSERT))

        assert outcome.inserted_count == 2
        assert [error.code for error in outcome.errors] == [DUPLICATE_KEY]
        assert outcome.errors[0].index == 1

    def test_upsert_counts(self):
        existing = {"_id": ObjectId(), "path": "/a", "v": 1}
        collection = MockCollection(name="pages", documents=[existing])
        batch = [{"_id": existing["_id"], "path": "/a", "v": 2}, {"_id": ObjectId(), "path": "/b"}]

        outcome = BulkWriter().write(collection, batch, "pages", _settings(ImportMode.UPSERT))

        assert outcome.upserted_count == 1
        assert outcome.matched_count == 1
        assert outcome.reported_inserted(ImportMode.UPSERT) == 1
        assert outcome.reported_modified(ImportMode.UPSERT) == 1

    def test_unchanged_upsert_still_reported_as_modified(self):
        document = {"_id": ObjectId(), "path": "/a"}
        collection = MockCollection(name="pages", documents=[dict(document)])

        outcome = BulkWriter().write(collection, [document], "pages", _settings(ImportMode.UPSERT))

        assert outcome.modified_count == 0
        assert outcome.reported_modified(ImportMode.UPSERT) == 1

    def test_unrecognized_bulk_error_raises(self):
        collection = MockCollection(name="tags", fail_with=BulkWriteError({"errmsg": "boom"}))

        with pytest.raises(BulkWriteExecutionError, match="could not be handled"):
            BulkWriter().write(collection, _docs(1), "tags", _settings(ImportMode.INSERT))

    def test_driver_error_raises(self):
        collection = MockCollection(name="tags", fail_with=AutoReconnect("connection reset"))

        with pytest.raises(BulkWriteExecutionError, match="connection reset"):
            BulkWriter().write(collection, _docs(1), "tags", _settings(ImportMode.INSERT))


class TestBulkOutcome:
    def test_from_details_single_error_mapping(self):
        outcome = BulkOutcome.from_details(
            {"nInserted": 4, "writeErrors": {"index": 2, "code": 11000, "errmsg": "dup"}}
        )
        assert outcome.inserted_count == 4
        assert outcome.errors == (WriteErrorDetail(index=2, code=11000, message="dup"),)

    def test_from_details_missing_counters(self):
        outcome = BulkOutcome.from_details({"writeErrors": []})
        assert outcome == BulkOutcome()

    def test_insert_mode_reports_raw_counters(self):
        outcome = BulkOutcome(inserted_count=3, modified_count=0, upserted_count=7, matched_count=7)
        assert outcome.reported_inserted(ImportMode.INSERT) == 3
        assert outcome.reported_modified(ImportMode.FLUSH_AND_INSERT) == 0

    def test_error_detail_as_dict(self):
        detail = WriteErrorDetail.from_raw({"index": 1, "code": 121, "errmsg": "invalid"})
        assert detail.as_dict() == {"index": 1, "code": 121, "message": "invalid"}
