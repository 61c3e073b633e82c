"""Turn one raw exported record into the document to persist."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from bulkrestore.errors import RecordShapeError
from bulkrestore.schema.convert_map import ConvertContext, ConvertMap, keep_original
from bulkrestore.schema.registry import CollectionSchema, SchemaRegistry

from .settings import OverwriteParams


class DocumentConverter:
    """Apply the convert map, then the overwrite params, to a record.

    Conversion never mutates the raw record. The schema lookup is cached per
    collection for the lifetime of a run; call ``clear_cache`` when it ends.
    """

    def __init__(self, convert_map: ConvertMap, registry: SchemaRegistry) -> None:
        self.convert_map = convert_map
        self.registry = registry
        self._schema_cache: dict[str, CollectionSchema | None] = {}

    def _schema_for(self, collection_name: str) -> CollectionSchema | None:
        if collection_name not in self._schema_cache:
            self._schema_cache[collection_name] = self.registry.get(collection_name)
        return self._schema_cache[collection_name]

    def clear_cache(self) -> None:
        self._schema_cache.clear()

    def convert(
        self,
        collection_name: str,
        raw: Mapping[str, Any],
        overwrite_params: OverwriteParams,
    ) -> dict[str, Any]:
        if type(raw) is dict:
            document: dict[str, Any] = dict(raw)
        elif isinstance(raw, Mapping):
            document = copy.deepcopy(dict(raw))
        else:
            raise RecordShapeError(
                f"Record in {collection_name} is not a JSON object: {type(raw).__name__}"
            )

        schema = self._schema_for(collection_name)
        functions = self.convert_map.get(collection_name, {})

        for field_name, value in raw.items():
            convert = functions.get(field_name, keep_original)
            document[field_name] = convert(value, ConvertContext(raw, field_name, schema))

        for field_name, overwrite in overwrite_params.items():
            # An explicit null is overwritten; a missing field is not.
            if field_name not in raw:
                continue
            if callable(overwrite):
                document[field_name] = overwrite(
                    document[field_name], ConvertContext(document, field_name, schema)
                )
            else:
                document[field_name] = overwrite

        return document


__all__ = ["DocumentConverter"]
