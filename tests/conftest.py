"""Shared fixtures: a counting fake HTTP client and zip archive builders."""

import io
import json
import zipfile
from typing import Dict, List, Optional, Union

import pytest

from cache import MemoryCache
from common.http_client import HttpResponse, TransportError
from metadata.models import Configuration, Identity
import updater
from updater import PluginUpdater

API = "https://api.github.com"
REPO = "acme/my-plugin"
PLUGIN = "my-plugin/my-plugin.php"
SLUG = "my-plugin"
LATEST_URL = f"{API}/repos/{REPO}/releases/latest"
ZIP_URL = "https://github.com/acme/my-plugin/releases/download/v1.3.0/my-plugin.zip"
JSON_URL = "https://github.com/acme/my-plugin/releases/download/v1.3.0/plugin.json"

PLUGIN_HEADER = """<?php
/**
 * Plugin Name: My Plugin
 * Plugin URI: https://example.com/my-plugin
 * Version: {version}
 * Requires at least: 6.0
 * Requires PHP: 7.4
 * Tested up to: 6.5
 * Author: Acme
 * Author URI: https://example.com/acme
 */
"""


class FakeHttpClient:
    """HttpClient stub that records every call.

    ``routes`` maps URL -> HttpResponse or exception for get();
    ``downloads`` maps URL -> bytes or exception for download().
    """

    def __init__(self, routes=None, downloads=None):
        self.routes: Dict[str, Union[HttpResponse, Exception]] = dict(routes or {})
        self.downloads: Dict[str, Union[bytes, Exception]] = dict(downloads or {})
        self.get_calls: List[str] = []
        self.download_calls: List[str] = []
        self.last_headers: Optional[Dict[str, str]] = None
        self.last_max_bytes: Optional[int] = None

    @property
    def call_count(self) -> int:
        return len(self.get_calls) + len(self.download_calls)

    def get(self, url, headers, timeout):
        self.get_calls.append(url)
        self.last_headers = headers
        result = self.routes.get(url)
        if result is None:
            return HttpResponse(404, {}, "")
        if isinstance(result, Exception):
            raise result
        return result

    def download(self, url, dest, headers, timeout, max_bytes=None):
        self.download_calls.append(url)
        self.last_max_bytes = max_bytes
        result = self.downloads.get(url)
        if result is None:
            raise TransportError("download returned HTTP 404", status_code=404)
        if isinstance(result, Exception):
            raise result
        with open(dest, "wb") as handle:
            handle.write(result)


def json_response(payload, status=200, headers=None):
    return HttpResponse(status, headers or {}, json.dumps(payload))


def release_payload(assets=("my-plugin.zip", "plugin.json"), tag="v1.3.0", body=""):
    return {
        "tag_name": tag,
        "name": tag,
        "published_at": "2024-05-01T12:00:00Z",
        "body": body,
        "assets": [
            {
                "name": name,
                "browser_download_url": f"https://github.com/acme/my-plugin/releases/download/{tag}/{name}",
                "size": 1024,
            }
            for name in assets
        ],
    }


def plugin_json(**overrides):
    data = {
        "name": "My Plugin",
        "slug": SLUG,
        "version": "1.3.0",
        "tested": "6.5",
        "requires": "6.0",
        "author": "Acme",
    }
    data.update(overrides)
    return data


def build_zip(files: Dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def plugin_zip(version="1.3.0", extra: Optional[Dict[str, str]] = None) -> bytes:
    files = {f"{PLUGIN}": PLUGIN_HEADER.format(version=version)}
    files.update(extra or {})
    return build_zip(files)


def corrupt_deflate_zip() -> bytes:
    """A plugin zip whose signature is intact but whose deflate stream is not.

    0xFF as the first byte of a deflate block selects the reserved block type.
    """
    data = bytearray(plugin_zip())
    start = 30 + len(PLUGIN)  # fixed local header + member name, no extra field
    data[start : start + 20] = b"\xff" * 20
    return bytes(data)


@pytest.fixture(autouse=True)
def _reset_updaters(monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setattr(updater, "_default_cache", None)
    PluginUpdater.clear_instances()
    yield
    PluginUpdater.clear_instances()


@pytest.fixture
def identity():
    return Identity.create(PLUGIN, REPO)


@pytest.fixture
def config():
    return Configuration()


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def temp_root(tmp_path):
    root = tmp_path / "work"
    root.mkdir()
    return root
