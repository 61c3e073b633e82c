"""Test utilities and builders for the bulkrestore test suite.

Usage:
    from tests.helpers import write_archive, page_records, object_id_hex
"""

from __future__ import annotations

import zipfile
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from bulkrestore.lib.json import dumps

APP_VERSION = "7.1.0"


# =============================================================================
# RECORD BUILDERS
# =============================================================================


def object_id_hex(n: int) -> str:
    """Deterministic 24-char hex id for record ``n``."""
    return f"{n:024x}"


def page_records(count: int, *, start: int = 0, **fields: Any) -> list[dict[str, Any]]:
    return [
        {
            "_id": object_id_hex(start + i + 1),
            "path": f"/page-{start + i}",
            "createdAt": "2024-01-02T03:04:05.000Z",
            "grant": 1,
            **fields,
        }
        for i in range(count)
    ]


def revision_records(count: int, **fields: Any) -> list[dict[str, Any]]:
    return [
        {
            "_id": object_id_hex(10_000 + i),
            "pageId": object_id_hex(i + 1),
            "body": f"body {i}",
            "author": object_id_hex(999),
            "createdAt": 1704164645000,
            **fields,
        }
        for i in range(count)
    ]


def write_records(path: Path, records: Iterable[Mapping[str, Any]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(list(records)), encoding="utf-8")
    return path


# =============================================================================
# ARCHIVE BUILDERS
# =============================================================================


def write_archive(
    path: Path,
    collections: Mapping[str, Iterable[Mapping[str, Any]] | bytes],
    *,
    version: str | None = APP_VERSION,
    meta: Mapping[str, Any] | None = None,
    meta_file_name: str = "meta.json",
    extra_entries: Mapping[str, bytes] | None = None,
) -> Path:
    """Write an archive with one ``<collection>.json`` array per collection.

    Pass ``version=None`` to leave the manifest out entirely.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        if version is not None:
            manifest = {"version": version, "url": "https://wiki.example.com", "exportedAt": "2024-05-01T10:00:00.000Z"}
            manifest.update(meta or {})
            archive.writestr(meta_file_name, dumps(manifest))
        for name, records in collections.items():
            payload = records if isinstance(records, bytes) else dumps(list(records)).encode("utf-8")
            archive.writestr(f"{name}.json", payload)
        for entry_name, payload in (extra_entries or {}).items():
            archive.writestr(entry_name, payload)
    return path


__all__ = [
    "APP_VERSION",
    "object_id_hex",
    "page_records",
    "revision_records",
    "write_archive",
    "write_records",
]
