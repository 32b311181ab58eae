"""Metadata resolution: JSON sidecar first, release archive as fallback."""
from __future__ import annotations

import logging
from typing import Optional

from common.logging_utils import extra_context
from metadata.archive_source import ArchiveMetadataSource
from metadata.json_source import JsonMetadataSource
from metadata.models import Configuration, Identity, RawRelease, ResolvedMetadata
from repository.github import FetchFailure, ReleaseFetcher

logger = logging.getLogger(__name__)


class MetadataResolver:
    """Resolves the latest release metadata for one identity.

    Order of attempts:

    * prefer_json: JSON sidecar, then archive.
    * otherwise: archive, then JSON as a last resort.

    Failures are logged and reported as None; nothing is raised to the caller.
    """

    def __init__(
        self,
        fetcher: ReleaseFetcher,
        json_source: JsonMetadataSource,
        archive_source: ArchiveMetadataSource,
    ):
        self.fetcher = fetcher
        self.json_source = json_source
        self.archive_source = archive_source

    def fetch_release(self, identity: Identity, config: Configuration) -> Optional[RawRelease]:
        result = self.fetcher.fetch_latest_release(identity, config)
        if isinstance(result, FetchFailure):
            logger.error(
                "No release data available for %s",
                identity.repository,
                extra=extra_context(
                    event="resolve_metadata",
                    component="resolver",
                    outcome=result.kind.value,
                    repository=identity.repository,
                ),
            )
            return None
        return result

    def resolve_metadata(self, identity: Identity, config: Configuration) -> Optional[ResolvedMetadata]:
        release = self.fetch_release(identity, config)
        if release is None:
            return None

        if config.prefer_json:
            metadata = self.json_source.get_metadata(identity, config, release)
            if metadata is not None:
                return metadata
            logger.info(
                "JSON metadata not available, falling back to archive parsing",
                extra=extra_context(event="resolve_metadata", component="resolver", slug=identity.slug),
            )

        metadata = self.archive_source.get_metadata(identity, config, release)
        if metadata is not None:
            metadata.last_updated = release.published_at
            return metadata
        logger.warning(
            "Archive metadata not available",
            extra=extra_context(event="resolve_metadata", component="resolver", slug=identity.slug),
        )

        if not config.prefer_json:
            metadata = self.json_source.get_metadata(identity, config, release)
            if metadata is not None:
                logger.info(
                    "Retrieved JSON metadata on fallback (version %s)",
                    metadata.version,
                    extra=extra_context(event="resolve_metadata", component="resolver", slug=identity.slug),
                )
                return metadata

        logger.error(
            "All metadata retrieval methods failed for %s",
            identity.repository,
            extra=extra_context(
                event="resolve_metadata",
                component="resolver",
                outcome="failed",
                repository=identity.repository,
                prefer_json=config.prefer_json,
            ),
        )
        return None
