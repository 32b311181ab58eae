"""Metadata from a ``plugin.json`` release asset."""
from __future__ import annotations

import json
import logging
from typing import Optional

from cache import CacheStore, cache_key
from common.http_client import HttpClient, TransportError, build_headers
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from constants import Constants, FailureKind
from metadata.models import Configuration, Identity, RawRelease, ResolvedMetadata
from repository.download_link import find_asset, resolve_download_link

logger = logging.getLogger(__name__)


class JsonMetadataSource:
    """Reads the JSON sidecar published alongside a release."""

    def __init__(self, http: HttpClient, cache: CacheStore):
        self.http = http
        self.cache = cache

    def get_metadata(
        self, identity: Identity, config: Configuration, release: RawRelease
    ) -> Optional[ResolvedMetadata]:
        key = cache_key(Constants.CACHE_JSON, identity.slug)
        cached = self.cache.get(key)
        if isinstance(cached, dict):
            if is_debug_enabled(logger):
                logger.debug(
                    "JSON metadata cache hit",
                    extra=extra_context(event="cache_hit", component="json_source", key=key),
                )
            return ResolvedMetadata.from_mapping(cached)

        asset = find_asset(release.assets, [Constants.METADATA_ASSET_NAME])
        if asset is None:
            logger.warning(
                "No %s found in release assets",
                Constants.METADATA_ASSET_NAME,
                extra=extra_context(
                    event="json_metadata",
                    component="json_source",
                    outcome="asset_missing",
                    available_assets=release.asset_names(),
                ),
            )
            return None

        context = {"asset_url": safe_url(asset.download_url)}
        try:
            response = self.http.get(asset.download_url, build_headers(config.token), config.timeout)
        except TransportError as exc:
            self._log_failure(FailureKind.NETWORK_ERROR, f"Failed to fetch plugin.json: {exc}", context)
            return None

        if response.status_code != 200:
            self._log_failure(
                FailureKind.HTTP_ERROR,
                f"Failed to fetch plugin.json: HTTP {response.status_code}",
                dict(context, status_code=response.status_code),
            )
            return None

        try:
            data = json.loads(response.body) if response.body else None
        except json.JSONDecodeError as exc:
            self._log_failure(
                FailureKind.MALFORMED_JSON,
                f"Invalid JSON format in plugin.json: {exc.msg}",
                dict(context, raw_content=response.body[: Constants.LOG_EXCERPT_CHARS]),
            )
            return None

        if not data:
            self._log_failure(FailureKind.EMPTY_BODY, "Empty JSON data in plugin.json", context)
            return None
        if not isinstance(data, dict):
            self._log_failure(FailureKind.MALFORMED_JSON, "plugin.json is not a JSON object", context)
            return None

        missing = [f for f in Constants.REQUIRED_JSON_FIELDS if not _present(data.get(f))]
        if missing:
            self._log_failure(
                FailureKind.MISSING_FIELDS,
                f"Missing required fields in plugin.json: {', '.join(missing)}",
                dict(context, missing_fields=missing, available_fields=sorted(data)),
            )
            return None

        merged = {
            "last_updated": release.published_at,
            "download_link": resolve_download_link(release, identity.slug),
        }
        merged.update({k: v for k, v in data.items() if v not in ("", None)})
        metadata = ResolvedMetadata.from_mapping(merged)

        self.cache.set(key, metadata.to_dict(), config.cache_duration)
        logger.info(
            "Loaded metadata from plugin.json (version %s)",
            metadata.version,
            extra=extra_context(
                event="json_metadata", component="json_source", outcome="success", **context
            ),
        )
        return metadata

    def _log_failure(self, kind: FailureKind, message: str, context: dict) -> None:
        logger.error(
            "%s",
            message,
            extra=extra_context(event="json_metadata", component="json_source", outcome=kind.value, **context),
        )


def _present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return True
    return False
