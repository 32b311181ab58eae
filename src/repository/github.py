"""GitHub release client.

Fetches the latest release descriptor for a repository and keeps the
decoded payload in the cache for the configured duration.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from cache import CacheStore, cache_key
from common.http_client import HttpClient, HttpResponse, TransportError, build_headers
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from constants import Constants, FailureKind
from metadata.models import Configuration, Identity, RawRelease

logger = logging.getLogger(__name__)


@dataclass
class FetchFailure:
    """Why the latest release could not be obtained."""

    kind: FailureKind
    message: str
    status_code: Optional[int] = None
    context: Dict[str, Any] = field(default_factory=dict)


def describe_http_failure(response: HttpResponse) -> FetchFailure:
    """Build an HTTP_ERROR failure annotated for the common GitHub status codes."""
    code = response.status_code
    message = f"GitHub API request failed: HTTP {code}"
    context: Dict[str, Any] = {"http_code": code}

    if code == 403:
        message += " (rate limit exceeded or insufficient permissions)"
        remaining = response.header("x-ratelimit-remaining")
        if remaining is not None:
            context["rate_limit_remaining"] = remaining
    elif code == 404:
        message += " (repository not found or private, or no release exists)"
    elif code == 401:
        message += " (authentication failed - check the GitHub token)"
    elif 500 <= code < 600:
        message += " (upstream server error - transient)"

    return FetchFailure(FailureKind.HTTP_ERROR, message, status_code=code, context=context)


class ReleaseFetcher:
    """Retrieves the latest release for an identity, cache first."""

    def __init__(self, http: HttpClient, cache: CacheStore, api_base: Optional[str] = None):
        self.http = http
        self.cache = cache
        self.api_base = (api_base or Constants.GITHUB_API_BASE).rstrip("/")

    def latest_release_url(self, identity: Identity) -> str:
        return f"{self.api_base}/repos/{identity.repository}/releases/latest"

    def fetch_latest_release(
        self, identity: Identity, config: Configuration
    ) -> Union[RawRelease, FetchFailure]:
        """Return the latest RawRelease, or a FetchFailure describing the cause.

        Makes a single attempt; no retries.
        """
        key = cache_key(Constants.CACHE_RELEASE, identity.slug)
        cached = self.cache.get(key)
        if isinstance(cached, dict):
            if is_debug_enabled(logger):
                logger.debug(
                    "Release cache hit",
                    extra=extra_context(event="cache_hit", component="release_fetcher", key=key),
                )
            return RawRelease.from_dict(cached)

        url = self.latest_release_url(identity)
        try:
            response = self.http.get(url, build_headers(config.token), config.timeout)
        except TransportError as exc:
            return self._fail(
                identity,
                FetchFailure(
                    FailureKind.NETWORK_ERROR,
                    f"GitHub API request failed: {exc}",
                    context={"timed_out": exc.timed_out},
                ),
                url,
            )

        if response.status_code != 200:
            return self._fail(identity, describe_http_failure(response), url)

        if not response.body or not response.body.strip():
            return self._fail(
                identity,
                FetchFailure(FailureKind.EMPTY_BODY, "Empty response from GitHub API", 200),
                url,
            )

        try:
            payload = json.loads(response.body)
        except json.JSONDecodeError as exc:
            return self._fail(
                identity,
                FetchFailure(
                    FailureKind.MALFORMED_JSON,
                    f"Invalid JSON in GitHub API response: {exc.msg}",
                    200,
                    {"response_excerpt": response.body[: Constants.LOG_EXCERPT_CHARS]},
                ),
                url,
            )

        if not isinstance(payload, dict) or not payload:
            return self._fail(
                identity,
                FetchFailure(FailureKind.MALFORMED_JSON, "GitHub API response is not a release object", 200),
                url,
            )

        release = RawRelease.from_api(payload)
        self.cache.set(key, release.to_dict(), config.cache_duration)
        logger.info(
            "Fetched latest release %s for %s",
            release.tag_name,
            identity.repository,
            extra=extra_context(
                event="release_fetched",
                component="release_fetcher",
                outcome="success",
                repository=identity.repository,
                asset_count=len(release.assets),
            ),
        )
        return release

    def _fail(self, identity: Identity, failure: FetchFailure, url: str) -> FetchFailure:
        logger.error(
            "%s",
            failure.message,
            extra=extra_context(
                event="release_fetch",
                component="release_fetcher",
                outcome=failure.kind.value,
                repository=identity.repository,
                plugin=identity.plugin,
                target=safe_url(url),
                status_code=failure.status_code,
                **failure.context,
            ),
        )
        return failure
