"""Download-link resolution against release assets.

Picks the installable archive among a release's assets: first by well-known
names, then by names built from the version token in the release tag.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional

from constants import Constants
from metadata.models import Asset, RawRelease

VERSION_TOKEN_RE = re.compile(r"\d+(?:\.\d+)+")


def extract_version_token(tag_name: str) -> str:
    """Return the first dotted numeric token in tag_name ("v2.1.0" -> "2.1.0"), or ""."""
    match = VERSION_TOKEN_RE.search(tag_name or "")
    return match.group(0) if match else ""


def primary_candidates(slug: str) -> List[str]:
    return [f"{slug}.zip", *Constants.GENERIC_ARCHIVE_NAMES]


def versioned_candidates(slug: str, version: str, tag_name: str = "") -> List[str]:
    """Names built from the version token, then from the verbatim tag ("v2.1.0.zip")."""
    if not version:
        return []
    names = [f"{slug}-{version}.zip", f"{version}.zip"]
    tag_name = (tag_name or "").strip()
    if tag_name and tag_name != version:
        names += [f"{slug}-{tag_name}.zip", f"{tag_name}.zip"]
    return names


def find_asset(assets: Iterable[Asset], candidates: Iterable[str]) -> Optional[Asset]:
    """First asset matching the candidate names, honouring candidate order.

    Names are compared case-insensitively.
    """
    by_name = {}
    for asset in assets:
        by_name.setdefault(asset.name.lower(), asset)
    for candidate in candidates:
        asset = by_name.get(candidate.lower())
        if asset is not None:
            return asset
    return None


def resolve_download_link(release: Optional[RawRelease], slug: str) -> str:
    """Download URL of the release archive, or "" when no asset matches."""
    if release is None or not release.assets:
        return ""

    asset = find_asset(release.assets, primary_candidates(slug))
    if asset is None:
        version = extract_version_token(release.tag_name)
        asset = find_asset(release.assets, versioned_candidates(slug, version, release.tag_name))

    return asset.download_url if asset is not None else ""
