"""Version comparison for installed, released and host versions."""
from __future__ import annotations

import semantic_version
from packaging import version as pkg_version


def _semver(value: str) -> semantic_version.Version:
    return semantic_version.Version.coerce(value.strip().lstrip("vV"))


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 as a is lower than, equal to or higher than b.

    PEP 440 ordering is used when both strings parse ("6.5", "1.2.0rc1");
    otherwise both are coerced to semantic versions ("1.2.0-beta.2").

    Raises:
        ValueError: if either version cannot be interpreted.
    """
    if not a or not b:
        raise ValueError(f"Cannot compare empty version ({a!r}, {b!r})")
    try:
        left, right = pkg_version.Version(a), pkg_version.Version(b)
    except pkg_version.InvalidVersion:
        left, right = _semver(a), _semver(b)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def is_newer(candidate: str, current: str) -> bool:
    return compare_versions(candidate, current) > 0
