"""Security and integrity checks for downloaded release archives.

Checks run in order and stop at the first failure: existence, size limit,
sniffed MIME type (when a sniffer is configured), zip signature bytes, and a
structural integrity pass (when an integrity checker is configured). No
single check is trusted on its own.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional

from archive.extractor import ExtractionError, ZipExtractor
from common.logging_utils import extra_context
from constants import Constants, FailureKind

logger = logging.getLogger(__name__)

MimeSniffer = Callable[[str], Optional[str]]
IntegrityChecker = Callable[[str], None]


@dataclass
class ValidationFailure:
    kind: FailureKind
    message: str


class ArchiveValidator:
    """Validates a file before it is handed to the extractor.

    Args:
        mime_sniffer: Optional callable returning the sniffed MIME type of a path.
        integrity_checker: Optional callable raising ExtractionError when the
            archive structure is inconsistent. Defaults to a zipfile CRC pass.
    """

    def __init__(
        self,
        mime_sniffer: Optional[MimeSniffer] = None,
        integrity_checker: Optional[IntegrityChecker] = None,
    ):
        self.mime_sniffer = mime_sniffer
        self.integrity_checker = integrity_checker or ZipExtractor().open_for_integrity_check

    def validate(self, file_path: str, max_bytes: int) -> Optional[ValidationFailure]:
        """Return None when the archive passes every check, else the first failure."""
        if not os.path.isfile(file_path):
            return ValidationFailure(FailureKind.FILE_NOT_FOUND, "ZIP file not found")

        size = os.path.getsize(file_path)
        if size > max_bytes:
            return ValidationFailure(
                FailureKind.FILE_TOO_LARGE,
                f"Plugin file exceeds size limit of {max_bytes / 1024 / 1024:g} MB ({size} bytes)",
            )

        if self.mime_sniffer is not None:
            mime_type = self.mime_sniffer(file_path)
            if mime_type not in Constants.ZIP_MIME_TYPES:
                return ValidationFailure(
                    FailureKind.INVALID_FILE_TYPE,
                    f"File is not a valid ZIP archive (detected {mime_type or 'unknown'})",
                )

        try:
            with open(file_path, "rb") as handle:
                signature = handle.read(4)
        except OSError as exc:
            return ValidationFailure(FailureKind.FILE_READ_ERROR, f"Could not read ZIP file: {exc}")

        if signature not in Constants.ZIP_SIGNATURES:
            return ValidationFailure(
                FailureKind.INVALID_ZIP_SIGNATURE, "File does not have a valid ZIP signature"
            )

        try:
            self.integrity_checker(file_path)
        except ExtractionError as exc:
            logger.debug(
                "Integrity check failed: %s",
                exc,
                extra=extra_context(event="zip_integrity", component="archive_validator"),
            )
            return ValidationFailure(FailureKind.ZIP_INTEGRITY_FAILED, "ZIP file integrity check failed")

        return None
