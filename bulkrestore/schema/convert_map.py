"""Per-run table of field conversion functions.

Every declared field defaults to ``keep_original``, which casts the raw JSON
value to the field's declared type. A small set of tagged overrides replaces
that default for fields whose exported value must not be re-cast.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, NamedTuple

from bson import ObjectId

from bulkrestore.errors import FieldCastError
from bulkrestore.lib.log import get_logger

from .registry import CollectionSchema, FieldDescriptor, FieldType, SchemaRegistry

logger = get_logger(__name__)


class ConvertContext(NamedTuple):
    document: Mapping[str, Any]
    field_name: str
    schema: CollectionSchema | None


ConvertFunction = Callable[[Any, ConvertContext], Any]
ConvertMap = Mapping[str, Mapping[str, ConvertFunction]]


class _CastFailure(Exception):
    pass


def _cast_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, Mapping) and "$oid" in value:
        value = value["$oid"]
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise _CastFailure


def _cast_date(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, Mapping) and "$date" in value:
        value = value["$date"]
        if isinstance(value, Mapping) and "$numberLong" in value:
            value = int(value["$numberLong"])
    if isinstance(value, bool):
        raise _CastFailure
    if isinstance(value, (int, float)):
        # epoch milliseconds
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError as exc:
            raise _CastFailure from exc
    raise _CastFailure


def _cast_number(value: Any) -> int | float:
    if isinstance(value, bool):
        raise _CastFailure
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, Mapping):
        for key in ("$numberInt", "$numberLong"):
            if key in value:
                return int(value[key])
        if "$numberDouble" in value:
            return float(value["$numberDouble"])
        raise _CastFailure
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError as exc:
            raise _CastFailure from exc
    raise _CastFailure


def _cast_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise _CastFailure


def _cast_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, ObjectId)):
        return str(value)
    raise _CastFailure


def _cast_subdocument(value: Any) -> Mapping[str, Any]:
    if isinstance(value, Mapping):
        return value
    raise _CastFailure


_CASTERS: dict[FieldType, Callable[[Any], Any]] = {
    FieldType.OBJECT_ID: _cast_object_id,
    FieldType.DATE: _cast_date,
    FieldType.NUMBER: _cast_number,
    FieldType.BOOLEAN: _cast_boolean,
    FieldType.STRING: _cast_string,
    FieldType.SUBDOCUMENT: _cast_subdocument,
    FieldType.MIXED: lambda value: value,
}


def _cast_scalar(value: Any, descriptor: FieldDescriptor, collection_name: str | None) -> Any:
    if value is None:
        return None
    try:
        return _CASTERS[descriptor.type](value)
    except (_CastFailure, ValueError, TypeError, OverflowError, OSError) as exc:
        raise FieldCastError(collection_name, descriptor.name, descriptor.type.value, value) from exc


def cast_value(value: Any, descriptor: FieldDescriptor, collection_name: str | None = None) -> Any:
    """Cast a raw JSON value to the type declared by ``descriptor``.

    Raises:
        FieldCastError: If the value cannot represent the declared type.
    """
    if not descriptor.array:
        return _cast_scalar(value, descriptor, collection_name)
    if value is None:
        return None
    if isinstance(value, list):
        return [_cast_scalar(item, descriptor, collection_name) for item in value]
    return [_cast_scalar(value, descriptor, collection_name)]


def keep_original(value: Any, context: ConvertContext) -> Any:
    """Default conversion: cast to the declared type, else keep the value."""
    schema = context.schema
    descriptor = schema.descriptor(context.field_name) if schema is not None else None
    if descriptor is not None:
        return cast_value(value, descriptor, schema.collection_name if schema is not None else None)
    if context.field_name == "_id" and isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def pass_through(value: Any, context: ConvertContext) -> Any:
    """Identity; skips casting entirely."""
    return value


class OverrideTag(Enum):
    # Opaque pre-serialized snapshot; casting it against the declared
    # subdocument type fails on write.
    SKIP_CAST = "skip-cast"


_OVERRIDE_FUNCTIONS: Mapping[OverrideTag, ConvertFunction] = MappingProxyType({
    OverrideTag.SKIP_CAST: pass_through,
})

SPECIAL_CONVERT_OVERRIDES: Mapping[tuple[str, str], OverrideTag] = MappingProxyType({
    ("activities", "snapshot"): OverrideTag.SKIP_CAST,
})


class ConvertMapBuilder:
    """Build the read-only convert map for one import run."""

    def __init__(
        self,
        registry: SchemaRegistry,
        overrides: Mapping[tuple[str, str], OverrideTag] = SPECIAL_CONVERT_OVERRIDES,
    ) -> None:
        self.registry = registry
        self.overrides = overrides

    def build(self) -> ConvertMap:
        convert_map: dict[str, Mapping[str, ConvertFunction]] = {}
        for schema in self.registry:
            functions: dict[str, ConvertFunction] = {}
            for field_name in schema.fields:
                tag = self.overrides.get((schema.collection_name, field_name))
                functions[field_name] = _OVERRIDE_FUNCTIONS[tag] if tag is not None else keep_original
            convert_map[schema.collection_name] = MappingProxyType(functions)
        logger.debug("convert_map_built", collections=len(convert_map))
        return MappingProxyType(convert_map)


__all__ = [
    "ConvertContext",
    "ConvertFunction",
    "ConvertMap",
    "ConvertMapBuilder",
    "OverrideTag",
    "SPECIAL_CONVERT_OVERRIDES",
    "cast_value",
    "keep_original",
    "pass_through",
]
