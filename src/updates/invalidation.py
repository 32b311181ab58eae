"""Cache invalidation after the host applies an update."""
from __future__ import annotations

import logging

from cache import CacheStore, cache_key
from common.logging_utils import extra_context
from constants import Constants
from metadata.models import Identity

logger = logging.getLogger(__name__)


class InvalidationHandler:
    def __init__(self, cache: CacheStore):
        self.cache = cache

    def on_update_applied(self, identity: Identity, applied_plugin: str) -> bool:
        """Drop every cached record for identity if applied_plugin is its plugin.

        Returns True when entries were purged, False for an unrelated plugin.
        """
        if (applied_plugin or "").replace("\\", "/") != identity.plugin:
            return False

        for kind in Constants.CACHE_KINDS:
            self.cache.delete(cache_key(kind, identity.slug))

        logger.info(
            "Cleared plugin update cache after successful update",
            extra=extra_context(
                event="cache_invalidate",
                component="invalidation",
                plugin=identity.plugin,
                repository=identity.repository,
            ),
        )
        return True
