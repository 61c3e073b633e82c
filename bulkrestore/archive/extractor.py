"""Streaming zip extraction that refuses to write outside its destination."""

from __future__ import annotations

import re
import shutil
import zipfile
import zlib
from contextlib import suppress
from pathlib import Path

from bulkrestore.errors import ArchiveError
from bulkrestore.lib.log import get_logger
from bulkrestore.paths import is_within_root

from .manifest import META_FILE_NAME

logger = get_logger(__name__)

# ../../src/server/example.html and ..\..\example.html
_TRAVERSAL_RE = re.compile(r"(\.\./|\.\.\\)")

_COPY_BUFFER_SIZE = 1024 * 1024


def is_traversal_name(name: str) -> bool:
    """True if an archive entry name contains a parent-directory sequence."""
    return _TRAVERSAL_RE.search(name) is not None


class ArchiveExtractor:
    """Extract archive entries one by one into a working directory.

    The manifest entry is skipped; every other entry keeps its relative name.
    A failing entry never aborts its siblings.
    """

    def __init__(self, meta_file_name: str = META_FILE_NAME) -> None:
        self.meta_file_name = meta_file_name

    def extract(self, zip_path: Path, dest_dir: Path) -> list[Path]:
        """Extract ``zip_path`` into ``dest_dir`` and return the written files."""
        dest_dir.mkdir(parents=True, exist_ok=True)
        root = dest_dir.resolve()
        extracted: list[Path] = []

        try:
            archive = zipfile.ZipFile(zip_path)
        except (OSError, zipfile.BadZipFile) as exc:
            raise ArchiveError(f"Cannot open archive {zip_path}: {exc}") from exc

        with archive:
            for info in archive.infolist():
                name = info.filename
                if info.is_dir():
                    continue
                if is_traversal_name(name):
                    logger.error("archive_entry_rejected", entry=name, reason="path traversal")
                    continue
                if name == self.meta_file_name:
                    continue
                destination = root / name
                if not is_within_root(destination, root) or destination == root:
                    logger.error("archive_entry_rejected", entry=name, reason="outside destination")
                    continue
                written = self._extract_entry(archive, info, destination)
                if written is not None:
                    extracted.append(written)

        logger.info("archive_extracted", archive=str(zip_path), files=len(extracted))
        return extracted

    def _extract_entry(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo, destination: Path) -> Path | None:
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with archive.open(info) as source, destination.open("wb") as target:
                shutil.copyfileobj(source, target, _COPY_BUFFER_SIZE)
        except (OSError, zipfile.BadZipFile, zlib.error) as exc:
            logger.error("archive_entry_failed", entry=info.filename, error=str(exc))
            with suppress(OSError):
                destination.unlink(missing_ok=True)
            return None
        return destination


__all__ = ["ArchiveExtractor", "is_traversal_name"]
