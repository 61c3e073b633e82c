"""Operator options to per-collection settings."""

from __future__ import annotations

import pytest
from bson import ObjectId
from pydantic import ValidationError

from bulkrestore.archive.manifest import parse_zip_file
from bulkrestore.errors import ImportSettingsError
from bulkrestore.importing.overwrite_params import (
    GRANT_PUBLIC,
    GRANT_RESTRICTED,
    ImportOption,
    generate_overwrite_params,
)
from bulkrestore.importing.plan import build_import_settings
from bulkrestore.importing.settings import ImportMode, ImportSettings
from bulkrestore.schema.convert_map import ConvertContext
from tests.helpers import object_id_hex, page_records, write_archive

OPERATOR = object_id_hex(77)


class TestGenerateOverwriteParams:
    def test_author_fields_overwritten_with_operator(self):
        option = ImportOption(collection_name="pages", mode=ImportMode.UPSERT)

        params = generate_overwrite_params("pages", OPERATOR, option)

        assert params == {"creator": ObjectId(OPERATOR), "lastUpdateUser": ObjectId(OPERATOR)}

    def test_author_overwrite_disabled(self):
        option = ImportOption(collection_name="revisions", mode="insert", overwrite_author_with_current_user=False)
        assert generate_overwrite_params("revisions", OPERATOR, option) == {}

    def test_no_operator_no_author_overwrite(self):
        option = ImportOption(collection_name="comments", mode="insert")
        assert generate_overwrite_params("comments", None, option) == {}

    def test_user_secrets_initialized(self):
        option = ImportOption(collection_name="users", mode="insert")
        assert generate_overwrite_params("users", OPERATOR, option) == {"password": None, "apiToken": None}

    def test_user_secrets_kept(self):
        option = ImportOption(collection_name="users", mode="insert", initialize_secrets=False)
        assert generate_overwrite_params("users", OPERATOR, option) == {}

    def test_restricted_pages_made_public(self):
        option = ImportOption(
            collection_name="pages",
            mode="upsert",
            overwrite_author_with_current_user=False,
            make_public_for_restricted=True,
        )
        params = generate_overwrite_params("pages", None, option)
        document = {"grant": GRANT_RESTRICTED, "grantedUsers": [ObjectId(OPERATOR)]}

        document["grant"] = params["grant"](document["grant"], ConvertContext(document, "grant", None))
        document["grantedUsers"] = params["grantedUsers"](document["grantedUsers"], ConvertContext(document, "grantedUsers", None))

        assert list(params) == ["grant", "grantedUsers", "grantedGroups"]
        assert document == {"grant": GRANT_PUBLIC, "grantedUsers": []}

    def test_other_grants_untouched(self):
        option = ImportOption(collection_name="pages", mode="upsert", make_public_for_restricted=True)
        params = generate_overwrite_params("pages", None, option)
        document = {"grant": 4, "grantedUsers": [ObjectId(OPERATOR)]}

        assert params["grant"](4, ConvertContext(document, "grant", None)) == 4
        assert params["grantedUsers"](document["grantedUsers"], ConvertContext(document, "grantedUsers", None)) == document["grantedUsers"]

    def test_malformed_operator_rejected(self):
        option = ImportOption(collection_name="users", mode="insert")
        with pytest.raises(ImportSettingsError):
            generate_overwrite_params("users", "zzz", option)

    def test_option_is_frozen(self):
        option = ImportOption(collection_name="pages", mode="upsert")
        with pytest.raises(ValidationError):
            option.mode = ImportMode.INSERT  # type: ignore[misc]


class TestBuildImportSettings:
    @pytest.fixture
    def zip_stat(self, tmp_path):
        archive = write_archive(
            tmp_path / "backup.zip",
            {"pages": page_records(1), "revisions": [], "users": []},
        )
        return parse_zip_file(archive)

    def test_settings_for_requested_collections(self, zip_stat):
        settings_map = build_import_settings(
            zip_stat,
            ["pages", "revisions"],
            [
                ImportOption(collection_name="pages", mode="upsert"),
                ImportOption(collection_name="revisions", mode="insert"),
            ],
            OPERATOR,
        )

        assert set(settings_map) == {"pages", "revisions"}
        pages = settings_map["pages"]
        assert isinstance(pages, ImportSettings)
        assert pages.mode is ImportMode.UPSERT
        assert pages.source_file_name == "pages.json"
        assert pages.overwrite_params["creator"] == ObjectId(OPERATOR)

    def test_requested_collection_absent_from_archive(self, zip_stat):
        settings_map = build_import_settings(
            zip_stat,
            ["tags"],
            [ImportOption(collection_name="tags", mode="insert")],
            None,
        )
        assert settings_map == {}

    def test_missing_option_rejected(self, zip_stat):
        with pytest.raises(ImportSettingsError, match="users"):
            build_import_settings(zip_stat, ["users"], [], None)

    @pytest.mark.parametrize("operator_id", ["not-an-id", "", "0" * 23])
    def test_malformed_operator_rejected(self, zip_stat, operator_id):
        with pytest.raises(ImportSettingsError, match="not a valid ObjectId"):
            build_import_settings(
                zip_stat, ["revisions"], [ImportOption(collection_name="revisions", mode="insert")], operator_id
            )

    def test_normalization_requires_pages_upsert(self, zip_stat):
        with pytest.raises(ImportSettingsError, match="Upsert"):
            build_import_settings(
                zip_stat,
                ["pages"],
                [ImportOption(collection_name="pages", mode="insert")],
                None,
                normalize_pages=True,
            )

    def test_settings_are_read_only(self, zip_stat):
        settings_map = build_import_settings(
            zip_stat, ["pages"], [ImportOption(collection_name="pages", mode="upsert")], OPERATOR
        )
        with pytest.raises(TypeError):
            settings_map["pages"].overwrite_params["creator"] = None  # type: ignore[index]
