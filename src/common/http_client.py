"""Shared HTTP helpers used by the release fetcher and metadata sources.

Every call is a single attempt: update checks are periodic, so a failed
request simply leaves update state unchanged until the next poll. Transport
problems surface as ``TransportError``; any HTTP status is returned to the
caller, which decides what counts as success.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Network-level failure (DNS, connection, TLS, timeout).

    ``status_code`` is set when a download got an HTTP response other than 200.
    """

    def __init__(self, message: str, *, timed_out: bool = False, status_code: Optional[int] = None):
        super().__init__(message)
        self.timed_out = timed_out
        self.status_code = status_code


@dataclass
class HttpResponse:
    """Status, headers and decoded text body of a completed request."""

    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


class HttpClient(Protocol):
    """GET-only client interface consumed by the resolver components."""

    def get(self, url: str, headers: Dict[str, str], timeout: float) -> HttpResponse:
        ...

    def download(
        self,
        url: str,
        dest: str,
        headers: Dict[str, str],
        timeout: float,
        max_bytes: Optional[int] = None,
    ) -> None:
        ...


def build_headers(token: Optional[str], accept: str = "application/json") -> Dict[str, str]:
    """Request headers, including a bearer token when one is configured."""
    headers = {"Accept": accept, "User-Agent": Constants.USER_AGENT}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


class RequestsHttpClient:
    """HttpClient backed by ``requests``."""

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()

    def get(self, url: str, headers: Dict[str, str], timeout: float) -> HttpResponse:
        """Perform a GET request with DEBUG traces."""
        safe_target = safe_url(url)
        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="http_client",
                        action="GET",
                        target=safe_target,
                    ),
                )
            try:
                res = self.session.get(url, headers=headers, timeout=timeout)
            except requests.Timeout as exc:
                raise TransportError(
                    f"request timed out after {timeout} seconds", timed_out=True
                ) from exc
            except requests.RequestException as exc:  # includes ConnectionError
                raise TransportError(str(exc)) from exc

            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action="GET",
                        status_code=res.status_code,
                        duration_ms=t.duration_ms(),
                        target=safe_target,
                    ),
                )
            return HttpResponse(res.status_code, dict(res.headers), res.text)

    def download(
        self,
        url: str,
        dest: str,
        headers: Dict[str, str],
        timeout: float,
        max_bytes: Optional[int] = None,
    ) -> None:
        """Stream url into dest.

        Raises TransportError on network failure or a non-200 status. A
        partially written dest is removed before raising.

        With max_bytes set, streaming stops once more than max_bytes have been
        written; the truncated file still exceeds the limit, so the size check
        downstream rejects it without the rest of the body being fetched.
        """
        safe_target = safe_url(url)
        try:
            with Timer() as t:
                with self.session.get(url, headers=headers, timeout=timeout, stream=True) as res:
                    if res.status_code != 200:
                        raise TransportError(
                            f"download returned HTTP {res.status_code}", status_code=res.status_code
                        )
                    written = 0
                    with open(dest, "wb") as handle:
                        for chunk in res.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                            if not chunk:
                                continue
                            handle.write(chunk)
                            written += len(chunk)
                            if max_bytes is not None and written > max_bytes:
                                logger.warning(
                                    "Download exceeded %d bytes, stopped early",
                                    max_bytes,
                                    extra=extra_context(
                                        event="http_download",
                                        component="http_client",
                                        outcome="size_limit",
                                        target=safe_target,
                                    ),
                                )
                                break
            if is_debug_enabled(logger):
                logger.debug(
                    "Download complete",
                    extra=extra_context(
                        event="http_download",
                        component="http_client",
                        action="GET",
                        outcome="success",
                        duration_ms=t.duration_ms(),
                        target=safe_target,
                    ),
                )
        except requests.Timeout as exc:
            _remove_partial(dest)
            raise TransportError(
                f"download timed out after {timeout} seconds", timed_out=True
            ) from exc
        except (requests.RequestException, OSError) as exc:
            _remove_partial(dest)
            raise TransportError(str(exc)) from exc
        except TransportError:
            _remove_partial(dest)
            raise


def _remove_partial(path: str) -> None:
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError as exc:
        logger.warning(
            "Could not remove partial download %s: %s",
            path,
            exc,
            extra=extra_context(event="cleanup", component="http_client", outcome="failed"),
        )
