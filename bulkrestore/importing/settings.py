"""Per-collection import settings."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from bulkrestore.schema.convert_map import ConvertContext


class ImportMode(str, Enum):
    INSERT = "insert"
    FLUSH_AND_INSERT = "flushAndInsert"
    UPSERT = "upsert"


OverwriteFunction = Callable[[Any, "ConvertContext"], Any]
OverwriteParams = Mapping[str, Union[OverwriteFunction, Any]]


@dataclass(frozen=True)
class ImportSettings:
    """How one collection is imported.

    ``overwrite_params`` maps a field name to a literal value or to a
    function ``(value, context) -> value``; it is applied after the
    schema-driven conversion, and only to fields the record defines.
    """

    mode: ImportMode
    source_file_name: str
    overwrite_params: OverwriteParams = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", ImportMode(self.mode))
        object.__setattr__(self, "overwrite_params", MappingProxyType(dict(self.overwrite_params)))


__all__ = ["ImportMode", "ImportSettings", "OverwriteFunction", "OverwriteParams"]
