"""Archive handling: manifest inspection and safe extraction."""

from bulkrestore.archive.extractor import ArchiveExtractor, is_traversal_name
from bulkrestore.archive.manifest import (
    ArchiveManifest,
    InnerFileStat,
    ZipFileStat,
    list_zip_files,
    parse_zip_file,
)

__all__ = [
    "ArchiveExtractor",
    "ArchiveManifest",
    "InnerFileStat",
    "ZipFileStat",
    "is_traversal_name",
    "list_zip_files",
    "parse_zip_file",
]
