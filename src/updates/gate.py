"""Decides whether an update should be offered to the host."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from common.logging_utils import extra_context
from constants import Constants
from metadata.models import Configuration, Identity, ResolvedMetadata, UpdateDecision
from metadata.resolver import MetadataResolver
from updates.versions import compare_versions

logger = logging.getLogger(__name__)

Comparator = Callable[[str, str], int]


class UpdateGate:
    """Compares the installed version with the resolved release.

    An update is offered only when the release is strictly newer and the
    host satisfies the release's minimum host version.
    """

    def __init__(self, resolver: MetadataResolver, comparator: Optional[Comparator] = None):
        self.resolver = resolver
        self.comparator = comparator or compare_versions

    def check_for_update(
        self,
        identity: Identity,
        config: Configuration,
        installed_version: str,
        host_version: str,
    ) -> Optional[UpdateDecision]:
        metadata = self.resolver.resolve_metadata(identity, config)
        if metadata is None:
            return None
        return self.decide(identity, metadata, installed_version, host_version)

    def decide(
        self,
        identity: Identity,
        metadata: ResolvedMetadata,
        installed_version: str,
        host_version: str,
    ) -> Optional[UpdateDecision]:
        """Apply the version gate to already resolved metadata."""
        log_extra = extra_context(
            event="update_check",
            component="update_gate",
            slug=identity.slug,
            installed_version=installed_version,
            latest_version=metadata.version,
        )
        try:
            if self.comparator(installed_version, metadata.version) >= 0:
                logger.debug("%s is up to date (%s)", identity.slug, installed_version, extra=log_extra)
                return None
        except ValueError as exc:
            logger.warning("Cannot compare versions for %s: %s", identity.slug, exc, extra=log_extra)
            return None

        required = metadata.minimum_host_version
        if required:
            try:
                host_too_old = self.comparator(host_version, required) < 0
            except ValueError as exc:
                logger.warning(
                    "Cannot compare host version for %s: %s", identity.slug, exc, extra=log_extra
                )
                host_too_old = True
            if host_too_old:
                logger.info(
                    "Update %s for %s withheld: requires host %s, running %s",
                    metadata.version,
                    identity.slug,
                    required,
                    host_version,
                    extra=log_extra,
                )
                return None

        logger.info(
            "Update available for %s: %s -> %s",
            identity.slug,
            installed_version,
            metadata.version,
            extra=log_extra,
        )
        return UpdateDecision(
            id=f"{Constants.GITHUB_ID_PREFIX}/{identity.repository}",
            slug=identity.slug,
            plugin=identity.plugin,
            new_version=metadata.version,
            package_url=metadata.download_url,
            tested_up_to=metadata.tested_up_to,
            host_url=metadata.author_profile_url,
            minimum_host_version=required,
        )
