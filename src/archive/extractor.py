"""Zip extraction and structural integrity checks."""
from __future__ import annotations

import os
import zipfile
import zlib

# zipfile does not wrap decompressor errors (zlib.error, EOFError,
# NotImplementedError for unknown compression) in BadZipFile.
_ZIP_ERRORS = (
    zipfile.BadZipFile,
    zipfile.LargeZipFile,
    zlib.error,
    EOFError,
    NotImplementedError,
    OSError,
    RuntimeError,
)


class ExtractionError(Exception):
    """Archive could not be opened, verified or extracted."""


class ZipExtractor:
    """Extracts zip archives, refusing members that escape the destination."""

    def extract(self, archive_path: str, dest_dir: str) -> None:
        dest_root = os.path.realpath(dest_dir)
        try:
            with zipfile.ZipFile(archive_path, "r") as archive:
                for member in archive.namelist():
                    target = os.path.realpath(os.path.join(dest_root, member))
                    if target != dest_root and not target.startswith(dest_root + os.sep):
                        raise ExtractionError(f"Archive member escapes extraction directory: {member}")
                archive.extractall(dest_root)
        except _ZIP_ERRORS as exc:
            raise ExtractionError(str(exc)) from exc

    def open_for_integrity_check(self, archive_path: str) -> None:
        """Open the archive and CRC-check every member."""
        try:
            with zipfile.ZipFile(archive_path, "r") as archive:
                bad_member = archive.testzip()
        except _ZIP_ERRORS as exc:
            raise ExtractionError(str(exc)) from exc
        if bad_member is not None:
            raise ExtractionError(f"Corrupt archive member: {bad_member}")
