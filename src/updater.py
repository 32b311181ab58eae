"""Host-facing entry point for plugin update checks.

One ``PluginUpdater`` exists per plugin file reference for the life of the
process; the host obtains it with ``PluginUpdater.get_instance`` and calls
``check_for_update``, ``plugin_information`` and ``on_update_applied``
directly. None of these raise on update-check failures: the worst case is
that no update information is available until the next poll.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from archive.sections import HtmlSanitizer
from archive.validator import ArchiveValidator
from cache import CacheStore, MemoryCache
from common.http_client import HttpClient, RequestsHttpClient
from common.logging_utils import extra_context
from metadata.archive_source import ArchiveMetadataSource
from metadata.json_source import JsonMetadataSource
from metadata.models import Configuration, Identity, ResolvedMetadata, UpdateDecision
from metadata.resolver import MetadataResolver
from repository.github import ReleaseFetcher
from updates.gate import UpdateGate
from updates.invalidation import InvalidationHandler

logger = logging.getLogger(__name__)

_default_cache: Optional[MemoryCache] = None


def default_cache() -> MemoryCache:
    """Process-wide cache shared by updaters that are not given one."""
    global _default_cache  # pylint: disable=global-statement
    if _default_cache is None:
        _default_cache = MemoryCache()
    return _default_cache


class PluginUpdater:
    """Update checks for one plugin backed by a GitHub repository."""

    _instances: Dict[str, "PluginUpdater"] = {}

    def __init__(
        self,
        identity: Identity,
        config: Configuration,
        *,
        http: Optional[HttpClient] = None,
        cache: Optional[CacheStore] = None,
        validator: Optional[ArchiveValidator] = None,
        extractor: Optional[Any] = None,
        api_base: Optional[str] = None,
        temp_dir: Optional[str] = None,
    ):
        self.identity = identity
        self.config = config
        self.http = http or RequestsHttpClient()
        self.cache = cache if cache is not None else default_cache()
        self.sanitizer = HtmlSanitizer()

        self.fetcher = ReleaseFetcher(self.http, self.cache, api_base=api_base)
        self.resolver = MetadataResolver(
            self.fetcher,
            JsonMetadataSource(self.http, self.cache),
            ArchiveMetadataSource(
                self.http,
                self.cache,
                validator=validator,
                extractor=extractor,
                sanitizer=self.sanitizer,
                temp_dir=temp_dir,
            ),
        )
        self.gate = UpdateGate(self.resolver)
        self.invalidation = InvalidationHandler(self.cache)

    @classmethod
    def get_instance(
        cls,
        plugin: str,
        repository: str,
        options: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> "PluginUpdater":
        """Return the updater registered for plugin, creating it on first use.

        Later calls for the same plugin return the existing instance and
        ignore repository, options and kwargs.

        Raises:
            ConfigurationError: on first use, for a missing reference or an
                unknown/invalid option.
        """
        key = (plugin or "").strip().replace("\\", "/")
        instance = cls._instances.get(key)
        if instance is None:
            config = Configuration.from_mapping(options)
            identity = Identity.create(plugin, repository, config.slug)
            instance = cls(identity, config, **kwargs)
            cls._instances[key] = instance
        return instance

    @classmethod
    def clear_instances(cls) -> None:
        """Forget every registered updater (tests, host reloads)."""
        cls._instances.clear()

    def resolve_metadata(self) -> Optional[ResolvedMetadata]:
        try:
            return self.resolver.resolve_metadata(self.identity, self.config)
        except Exception:  # pylint: disable=broad-exception-caught
            self._log_unexpected("resolve_metadata")
            return None

    def check_for_update(self, installed_version: str, host_version: str) -> Optional[UpdateDecision]:
        try:
            return self.gate.check_for_update(self.identity, self.config, installed_version, host_version)
        except Exception:  # pylint: disable=broad-exception-caught
            self._log_unexpected("check_for_update")
            return None

    def plugin_information(self, slug: str) -> Optional[ResolvedMetadata]:
        """Full metadata for the host's plugin details view, or None for another slug.

        Release notes from the release body are added as the ``other_notes`` section.
        """
        if slug != self.identity.slug:
            return None
        try:
            metadata = self.resolver.resolve_metadata(self.identity, self.config)
            if metadata is None:
                return None
            release = self.resolver.fetch_release(self.identity, self.config)
            if release is not None and release.body.strip():
                sections = dict(metadata.sections)
                sections["other_notes"] = self.sanitizer.sanitize(release.body)
                metadata = dataclasses.replace(metadata, sections=sections)
            return metadata
        except Exception:  # pylint: disable=broad-exception-caught
            self._log_unexpected("plugin_information")
            return None

    def on_update_applied(self, applied: Union[str, Iterable[str]]) -> bool:
        """Purge cached release data if this plugin is among the applied updates."""
        plugins = [applied] if isinstance(applied, str) else list(applied or [])
        purged = False
        for plugin in plugins:
            purged = self.invalidation.on_update_applied(self.identity, plugin) or purged
        return purged

    def _log_unexpected(self, action: str) -> None:
        logger.exception(
            "Unexpected error during %s for %s",
            action,
            self.identity.plugin,
            extra=extra_context(event="unexpected_error", component="updater", action=action),
        )
