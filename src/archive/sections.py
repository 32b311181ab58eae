"""Readme-style section discovery and HTML sanitization."""
from __future__ import annotations

import html
import logging
import os
import re
from typing import Callable, Dict, Mapping, Optional, Sequence

from common.logging_utils import extra_context
from constants import Constants

logger = logging.getLogger(__name__)

Sanitizer = Callable[[str], str]

_HEADINGS = (
    (re.compile(r"^### (.+)$", re.MULTILINE), r"<h3>\1</h3>"),
    (re.compile(r"^## (.+)$", re.MULTILINE), r"<h2>\1</h2>"),
    (re.compile(r"^# (.+)$", re.MULTILINE), r"<h1>\1</h1>"),
)
_BOLD = re.compile(r"\*\*(.+?)\*\*")
_ITALIC = re.compile(r"\*(.+?)\*")


class HtmlSanitizer:
    """Turns raw section text into safe HTML.

    All markup in the input is escaped; only headings, bold and italic
    written in Markdown are rendered, and newlines become ``<br />``.
    """

    def __call__(self, raw: str) -> str:
        return self.sanitize(raw)

    def sanitize(self, raw: str) -> str:
        text = html.escape((raw or "").replace("\r\n", "\n").strip(), quote=True)
        for pattern, replacement in _HEADINGS:
            text = pattern.sub(replacement, text)
        text = _BOLD.sub(r"<strong>\1</strong>", text)
        text = _ITALIC.sub(r"<em>\1</em>", text)
        return text.replace("\n", "<br />\n")


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as handle:
        return handle.read()


def collect_sections(
    directory: str,
    sanitizer: Sanitizer,
    candidates: Optional[Mapping[str, Sequence[str]]] = None,
) -> Dict[str, str]:
    """Map section name -> sanitized HTML for the section files found in directory.

    File names match case-insensitively; per section the first candidate with
    non-blank content wins.
    """
    candidates = candidates or Constants.SECTION_FILES
    try:
        entries = [e for e in os.listdir(directory) if os.path.isfile(os.path.join(directory, e))]
    except OSError as exc:
        logger.warning(
            "Could not list section directory %s: %s",
            directory,
            exc,
            extra=extra_context(event="sections", component="sections", outcome="list_failed"),
        )
        return {}

    by_lower = {}
    for entry in sorted(entries):
        by_lower.setdefault(entry.lower(), entry)

    sections: Dict[str, str] = {}
    for section, filenames in candidates.items():
        for filename in filenames:
            entry = by_lower.get(filename.lower())
            if entry is None:
                continue
            try:
                content = _read_text(os.path.join(directory, entry))
            except OSError as exc:
                logger.warning(
                    "Could not read section file %s: %s",
                    entry,
                    exc,
                    extra=extra_context(event="sections", component="sections", outcome="read_failed"),
                )
                continue
            if content.strip():
                sections[section] = sanitizer(content)
                break
    return sections
