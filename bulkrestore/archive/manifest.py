"""Archive manifest and inner file stats, read without extracting."""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bulkrestore.lib.json import JSONDecodeError, loads
from bulkrestore.lib.log import get_logger

logger = get_logger(__name__)

META_FILE_NAME = "meta.json"
RECORD_FILE_SUFFIX = ".json"


class ArchiveManifest(BaseModel):
    """Contents of the manifest entry written by the exporting system."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    version: str
    url: Optional[str] = None
    exported_at: Optional[str] = Field(default=None, alias="exportedAt")
    env_vars: dict[str, Any] = Field(default_factory=dict, alias="envVars")


class InnerFileStat(BaseModel):
    file_name: str
    collection_name: str
    size: int


class ZipFileStat(BaseModel):
    meta: ArchiveManifest
    file_name: str
    zip_file_path: Path
    ctime: float
    size: int
    inner_file_stats: list[InnerFileStat]


def list_zip_files(base_dir: Path) -> list[Path]:
    """Zip files directly inside ``base_dir``, sorted by name."""
    if not base_dir.is_dir():
        return []
    return sorted(path for path in base_dir.iterdir() if path.is_file() and path.suffix == ".zip")


def parse_zip_file(zip_path: Path, meta_file_name: str = META_FILE_NAME) -> ZipFileStat | None:
    """Read the manifest and list the record files of an archive.

    Returns ``None`` for broken archives or a missing/invalid manifest;
    the reason is logged.
    """
    try:
        with zipfile.ZipFile(zip_path) as archive:
            meta: ArchiveManifest | None = None
            inner_file_stats: list[InnerFileStat] = []
            for info in archive.infolist():
                if info.is_dir():
                    continue
                if info.filename == meta_file_name:
                    meta = ArchiveManifest.model_validate(loads(archive.read(info)))
                    continue
                name = Path(info.filename).name
                if not name.endswith(RECORD_FILE_SUFFIX):
                    continue
                inner_file_stats.append(
                    InnerFileStat(
                        file_name=info.filename,
                        collection_name=name[: -len(RECORD_FILE_SUFFIX)],
                        size=info.file_size,
                    )
                )
    except (OSError, zipfile.BadZipFile) as exc:
        logger.error("archive_unreadable", path=str(zip_path), error=str(exc))
        return None
    except (JSONDecodeError, ValidationError) as exc:
        logger.error("manifest_invalid", path=str(zip_path), error=str(exc))
        return None

    if meta is None:
        logger.error("manifest_missing", path=str(zip_path), meta_file_name=meta_file_name)
        return None

    file_stat = zip_path.stat()
    return ZipFileStat(
        meta=meta,
        file_name=zip_path.name,
        zip_file_path=zip_path,
        ctime=file_stat.st_ctime,
        size=file_stat.st_size,
        inner_file_stats=inner_file_stats,
    )


__all__ = [
    "ArchiveManifest",
    "InnerFileStat",
    "META_FILE_NAME",
    "ZipFileStat",
    "list_zip_files",
    "parse_zip_file",
]
