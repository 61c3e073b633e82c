"""Explicit per-collection field descriptor table.

Each collection the application stores is described by the fields it
declares and their types. The table is static: it ships with the package
(``default_registry``) or is loaded from a JSON schema file of the form::

    {
      "collections": {
        "pages": {"path": "string", "creator": "objectId", "tags": ["objectId"]}
      }
    }

A list value declares an array of the inner type.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from bulkrestore.errors import ConfigError
from bulkrestore.lib.json import JSONDecodeError, loads


class FieldType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    OBJECT_ID = "objectId"
    SUBDOCUMENT = "subdocument"
    MIXED = "mixed"


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    type: FieldType
    array: bool = False


@dataclass(frozen=True)
class CollectionSchema:
    collection_name: str
    fields: Mapping[str, FieldDescriptor] = field(default_factory=dict)

    def descriptor(self, name: str) -> FieldDescriptor | None:
        return self.fields.get(name)

    @classmethod
    def from_spec(cls, collection_name: str, spec: Mapping[str, Any]) -> "CollectionSchema":
        """Build a schema from ``{field: type}`` or ``{field: [type]}`` pairs."""
        fields: dict[str, FieldDescriptor] = {}
        for name, raw_type in spec.items():
            array = isinstance(raw_type, list)
            if array:
                if len(raw_type) != 1:
                    raise ConfigError(f"Array field {collection_name}.{name} must declare exactly one type")
                raw_type = raw_type[0]
            try:
                field_type = FieldType(raw_type)
            except ValueError as exc:
                raise ConfigError(f"Unknown type {raw_type!r} for {collection_name}.{name}") from exc
            fields[name] = FieldDescriptor(name=name, type=field_type, array=array)
        return cls(collection_name=collection_name, fields=MappingProxyType(fields))


class SchemaRegistry:
    """Read-only lookup of collection schemas by collection name."""

    def __init__(self, schemas: Iterable[CollectionSchema] = ()) -> None:
        self._schemas: dict[str, CollectionSchema] = {schema.collection_name: schema for schema in schemas}

    def __contains__(self, collection_name: object) -> bool:
        return collection_name in self._schemas

    def __iter__(self) -> Iterator[CollectionSchema]:
        return iter(self._schemas.values())

    def __len__(self) -> int:
        return len(self._schemas)

    def get(self, collection_name: str) -> CollectionSchema | None:
        return self._schemas.get(collection_name)

    def collection_names(self) -> list[str]:
        return list(self._schemas)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Mapping[str, Any]]) -> "SchemaRegistry":
        return cls(CollectionSchema.from_spec(name, spec) for name, spec in data.items())

    @classmethod
    def from_file(cls, path: Path) -> "SchemaRegistry":
        try:
            data = loads(path.read_bytes())
        except OSError as exc:
            raise ConfigError(f"Cannot read schema file {path}: {exc}") from exc
        except JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in schema file {path}: {exc}") from exc
        collections = data.get("collections") if isinstance(data, dict) else None
        if not isinstance(collections, dict):
            raise ConfigError(f"Schema file {path} must contain a 'collections' object")
        return cls.from_mapping(collections)


# Collections of the application whose archives are restored.
_DEFAULT_SCHEMAS: dict[str, dict[str, Any]] = {
    "pages": {
        "_id": "objectId",
        "parent": "objectId",
        "descendantCount": "number",
        "isEmpty": "boolean",
        "path": "string",
        "revision": "objectId",
        "status": "string",
        "grant": "number",
        "grantedUsers": ["objectId"],
        "grantedGroups": ["mixed"],
        "creator": "objectId",
        "lastUpdateUser": "objectId",
        "liker": ["objectId"],
        "seenUsers": ["objectId"],
        "commentCount": "number",
        "wip": "boolean",
        "deleteUser": "objectId",
        "deletedAt": "date",
        "createdAt": "date",
        "updatedAt": "date",
    },
    "revisions": {
        "_id": "objectId",
        "pageId": "objectId",
        "body": "string",
        "format": "string",
        "author": "objectId",
        "hasDiffToPrev": "boolean",
        "createdAt": "date",
    },
    "users": {
        "_id": "objectId",
        "username": "string",
        "name": "string",
        "email": "string",
        "password": "string",
        "apiToken": "string",
        "admin": "boolean",
        "readOnly": "boolean",
        "status": "number",
        "lang": "string",
        "lastLoginAt": "date",
        "createdAt": "date",
    },
    "comments": {
        "_id": "objectId",
        "page": "objectId",
        "creator": "objectId",
        "revision": "objectId",
        "comment": "string",
        "commentPosition": "number",
        "replyTo": "objectId",
        "createdAt": "date",
        "updatedAt": "date",
    },
    "attachments": {
        "_id": "objectId",
        "page": "objectId",
        "creator": "objectId",
        "filePath": "string",
        "fileName": "string",
        "originalName": "string",
        "fileFormat": "string",
        "fileSize": "number",
        "createdAt": "date",
    },
    "activities": {
        "_id": "objectId",
        "user": "objectId",
        "ip": "string",
        "endpoint": "string",
        "targetModel": "string",
        "target": "objectId",
        "action": "string",
        "snapshot": "subdocument",
        "createdAt": "date",
    },
    "configs": {
        "_id": "objectId",
        "ns": "string",
        "key": "string",
        "value": "string",
    },
    "tags": {
        "_id": "objectId",
        "name": "string",
    },
    "pagetagrelations": {
        "_id": "objectId",
        "relatedPage": "objectId",
        "relatedTag": "objectId",
        "isPageTrashed": "boolean",
    },
    "bookmarks": {
        "_id": "objectId",
        "page": "objectId",
        "user": "objectId",
        "createdAt": "date",
    },
    "usergroups": {
        "_id": "objectId",
        "name": "string",
        "description": "string",
        "parent": "objectId",
        "createdAt": "date",
    },
    "usergrouprelations": {
        "_id": "objectId",
        "relatedGroup": "objectId",
        "relatedUser": "objectId",
        "createdAt": "date",
    },
}


def default_registry() -> SchemaRegistry:
    """Registry for the collections shipped with the application."""
    return SchemaRegistry.from_mapping(_DEFAULT_SCHEMAS)


__all__ = [
    "CollectionSchema",
    "FieldDescriptor",
    "FieldType",
    "SchemaRegistry",
    "default_registry",
]
