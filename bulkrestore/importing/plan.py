"""Turn operator options for an archive into per-collection settings."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from bson import ObjectId

from bulkrestore.archive.manifest import ZipFileStat
from bulkrestore.errors import ImportSettingsError

from .overwrite_params import ImportOption, generate_overwrite_params, operator_object_id
from .settings import ImportMode, ImportSettings

PAGES_COLLECTION = "pages"


def build_import_settings(
    zip_stat: ZipFileStat,
    collections: Sequence[str],
    options: Iterable[ImportOption],
    operator_id: ObjectId | str | None,
    *,
    normalize_pages: bool = False,
) -> dict[str, ImportSettings]:
    """Settings for the requested collections that the archive contains.

    Raises:
        ImportSettingsError: The operator id is malformed, a requested
            collection has no option, or pages would be imported without
            upsert while normalization is on.
    """
    operator = operator_object_id(operator_id)
    options_by_collection = {option.collection_name: option for option in options}

    if normalize_pages and PAGES_COLLECTION in collections:
        pages_option = options_by_collection.get(PAGES_COLLECTION)
        if pages_option is not None and pages_option.mode is not ImportMode.UPSERT:
            raise ImportSettingsError("Upsert is only available for importing pages collection.")

    requested = set(collections)
    settings_map: dict[str, ImportSettings] = {}
    for inner in zip_stat.inner_file_stats:
        if inner.collection_name not in requested:
            continue
        option = options_by_collection.get(inner.collection_name)
        if option is None:
            raise ImportSettingsError(f"ImportOption for {inner.collection_name} is not found")
        settings_map[inner.collection_name] = ImportSettings(
            mode=option.mode,
            source_file_name=inner.file_name,
            overwrite_params=generate_overwrite_params(inner.collection_name, operator, option),
        )
    return settings_map


__all__ = ["PAGES_COLLECTION", "build_import_settings"]
