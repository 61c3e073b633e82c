"""Collection schemas and the per-run convert map built from them."""

from bulkrestore.schema.convert_map import (
    SPECIAL_CONVERT_OVERRIDES,
    ConvertContext,
    ConvertFunction,
    ConvertMap,
    ConvertMapBuilder,
    OverrideTag,
    cast_value,
    keep_original,
    pass_through,
)
from bulkrestore.schema.registry import (
    CollectionSchema,
    FieldDescriptor,
    FieldType,
    SchemaRegistry,
    default_registry,
)

__all__ = [
    "CollectionSchema",
    "ConvertContext",
    "ConvertFunction",
    "ConvertMap",
    "ConvertMapBuilder",
    "FieldDescriptor",
    "FieldType",
    "OverrideTag",
    "SPECIAL_CONVERT_OVERRIDES",
    "SchemaRegistry",
    "cast_value",
    "default_registry",
    "keep_original",
    "pass_through",
]
