"""Metadata derived from the release archive itself.

The archive is downloaded, validated and extracted into temporary
locations, the plugin header and section files are read, and every
temporary artifact is removed before returning, on success and failure.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
from typing import Any, Dict, Optional

from archive.extractor import ExtractionError, ZipExtractor
from archive.plugin_header import parse_plugin_header
from archive.sections import HtmlSanitizer, Sanitizer, collect_sections
from archive.validator import ArchiveValidator
from cache import CacheStore, cache_key
from common.http_client import HttpClient, TransportError, build_headers
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from constants import Constants, FailureKind
from metadata.models import Configuration, Identity, RawRelease, ResolvedMetadata
from repository.download_link import resolve_download_link

logger = logging.getLogger(__name__)


class ArchiveMetadataSource:
    """Builds metadata by unpacking the release zip."""

    def __init__(
        self,
        http: HttpClient,
        cache: CacheStore,
        *,
        validator: Optional[ArchiveValidator] = None,
        extractor: Optional[Any] = None,
        sanitizer: Optional[Sanitizer] = None,
        temp_dir: Optional[str] = None,
    ):
        self.http = http
        self.cache = cache
        self.validator = validator or ArchiveValidator()
        self.extractor = extractor or ZipExtractor()
        self.sanitizer = sanitizer or HtmlSanitizer()
        self.temp_dir = temp_dir

    def get_metadata(
        self, identity: Identity, config: Configuration, release: RawRelease
    ) -> Optional[ResolvedMetadata]:
        key = cache_key(Constants.CACHE_ARCHIVE, identity.slug)
        cached = self.cache.get(key)
        if isinstance(cached, dict):
            if is_debug_enabled(logger):
                logger.debug(
                    "Archive metadata cache hit",
                    extra=extra_context(event="cache_hit", component="archive_source", key=key),
                )
            return ResolvedMetadata.from_mapping(cached)

        download_link = resolve_download_link(release, identity.slug)
        if not download_link:
            logger.error(
                "No download link found in release",
                extra=extra_context(
                    event="archive_metadata",
                    component="archive_source",
                    outcome="no_download_link",
                    available_assets=release.asset_names(),
                ),
            )
            return None

        metadata = self._extract_metadata(identity, config, download_link)
        if metadata is None:
            return None

        self.cache.set(key, metadata.to_dict(), config.cache_duration)
        logger.info(
            "Loaded metadata from release archive (version %s)",
            metadata.version or "unknown",
            extra=extra_context(
                event="archive_metadata",
                component="archive_source",
                outcome="success",
                download_link=safe_url(download_link),
            ),
        )
        return metadata

    def _extract_metadata(
        self, identity: Identity, config: Configuration, download_link: str
    ) -> Optional[ResolvedMetadata]:
        context: Dict[str, Any] = {"download_link": safe_url(download_link)}
        archive_path: Optional[str] = None
        extract_dir: Optional[str] = None

        try:
            fd, archive_path = tempfile.mkstemp(
                prefix=Constants.TEMP_PREFIX, suffix=".zip", dir=self.temp_dir
            )
            os.close(fd)

            try:
                self.http.download(
                    download_link,
                    archive_path,
                    build_headers(config.token, accept="application/octet-stream"),
                    config.timeout,
                    max_bytes=config.max_file_size,
                )
            except TransportError as exc:
                if exc.status_code is not None:
                    self._log_failure(
                        FailureKind.HTTP_ERROR,
                        f"Failed to download plugin ZIP file: {exc}",
                        dict(context, status_code=exc.status_code),
                    )
                else:
                    self._log_failure(
                        FailureKind.NETWORK_ERROR, f"Failed to download plugin ZIP file: {exc}", context
                    )
                return None

            failure = self.validator.validate(archive_path, config.max_file_size)
            if failure is not None:
                self._log_failure(
                    failure.kind,
                    f"ZIP file validation failed: {failure.message}",
                    context,
                )
                return None

            extract_dir = tempfile.mkdtemp(prefix=Constants.TEMP_PREFIX, dir=self.temp_dir)
            try:
                self.extractor.extract(archive_path, extract_dir)
            except ExtractionError as exc:
                self._log_failure(
                    FailureKind.EXTRACTION_FAILED, f"Failed to extract ZIP file: {exc}", context
                )
                return None

            plugin_path = os.path.join(extract_dir, *identity.plugin.split("/"))
            if not os.path.isfile(plugin_path):
                self._log_failure(
                    FailureKind.LAYOUT_MISMATCH,
                    "Plugin file not found in extracted ZIP",
                    dict(
                        context,
                        expected_plugin_file=identity.plugin,
                        extracted_files=sorted(os.listdir(extract_dir)),
                    ),
                )
                return None

            try:
                header = parse_plugin_header(plugin_path)
            except OSError as exc:
                self._log_failure(FailureKind.FILESYSTEM, f"Could not read plugin file: {exc}", context)
                return None

            package_dir = os.path.dirname(plugin_path)
            sections = collect_sections(package_dir, self.sanitizer)

            return ResolvedMetadata(
                name=header.get("Name", ""),
                slug=identity.slug,
                version=header.get("Version", ""),
                tested_up_to=header.get("Tested up to", ""),
                minimum_host_version=header.get("Requires at least", ""),
                minimum_runtime_version=header.get("Requires PHP", ""),
                author=header.get("Author", ""),
                author_profile_url=header.get("Author URI") or header.get("Plugin URI", ""),
                download_url=download_link,
                sections=sections,
            )
        except OSError as exc:
            self._log_failure(FailureKind.FILESYSTEM, f"Temporary file handling failed: {exc}", context)
            return None
        finally:
            self._cleanup(archive_path, extract_dir)

    def _cleanup(self, archive_path: Optional[str], extract_dir: Optional[str]) -> None:
        """Remove temporary artifacts; failures are logged, never raised."""
        if archive_path and os.path.exists(archive_path):
            try:
                os.remove(archive_path)
            except OSError as exc:
                self._log_cleanup_failure(archive_path, exc)
        if extract_dir and os.path.exists(extract_dir):
            try:
                shutil.rmtree(extract_dir)
            except OSError as exc:
                self._log_cleanup_failure(extract_dir, exc)

    def _log_cleanup_failure(self, path: str, exc: BaseException) -> None:
        logger.warning(
            "Could not remove temporary path %s: %s",
            path,
            exc,
            extra=extra_context(
                event="cleanup", component="archive_source", outcome=FailureKind.FILESYSTEM.value
            ),
        )

    def _log_failure(self, kind: FailureKind, message: str, context: Dict[str, Any]) -> None:
        logger.error(
            "%s",
            message,
            extra=extra_context(event="archive_metadata", component="archive_source", outcome=kind.value, **context),
        )
