"""Plugin header parsing.

Reads the ``Key: value`` comment block at the top of a plugin's main file,
e.g.::

    /**
     * Plugin Name: My Plugin
     * Version: 1.2.0
     */
"""
from __future__ import annotations

import re
from typing import Dict

HEADER_FIELDS = {
    "Name": "Plugin Name",
    "Plugin URI": "Plugin URI",
    "Description": "Description",
    "Author": "Author",
    "Author URI": "Author URI",
    "Version": "Version",
    "Requires at least": "Requires at least",
    "Tested up to": "Tested up to",
    "Requires PHP": "Requires PHP",
    "Update URI": "Update URI",
}

# Headers are expected near the top of the file.
HEADER_READ_BYTES = 8192


def _header_pattern(header: str) -> re.Pattern:
    return re.compile(r"^[ \t/*#@]*" + re.escape(header) + r":(.*)$", re.MULTILINE | re.IGNORECASE)


_PATTERNS = {key: _header_pattern(header) for key, header in HEADER_FIELDS.items()}


def parse_header_text(text: str) -> Dict[str, str]:
    """Extract the known header fields from text; absent fields map to ""."""
    data = {}
    for key, pattern in _PATTERNS.items():
        match = pattern.search(text)
        value = match.group(1) if match else ""
        # drop a trailing comment terminator on single-line headers
        data[key] = re.sub(r"\s*(?:\*/|\?>).*$", "", value).strip()
    return data


def parse_plugin_header(path: str) -> Dict[str, str]:
    """Parse the header block of the plugin file at path.

    Raises OSError if the file cannot be read.
    """
    with open(path, "r", encoding="utf-8", errors="replace") as handle:
        text = handle.read(HEADER_READ_BYTES)
    return parse_header_text(text.replace("\r", "\n"))
