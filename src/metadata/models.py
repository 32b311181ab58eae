"""Data models for release data, configuration and resolved metadata."""

from __future__ import annotations

import os
import posixpath
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

from constants import Constants


class ConfigurationError(ValueError):
    """Invalid identity or configuration supplied by the host."""


@dataclass(frozen=True)
class Identity:
    """One update target: plugin file reference, repository and slug.

    The slug is the cache namespace and the host-side update key.
    """

    plugin: str  # e.g. "my-plugin/my-plugin.php"
    repository: str  # "owner/repo"
    slug: str

    @classmethod
    def create(cls, plugin: str, repository: str, slug: Optional[str] = None) -> "Identity":
        """Build an Identity, deriving the slug from the plugin directory name."""
        plugin = (plugin or "").strip().replace("\\", "/")
        repository = (repository or "").strip().strip("/")
        if not plugin or not repository:
            raise ConfigurationError("Both plugin and repository references are required.")
        if plugin.startswith("/") or ".." in plugin.split("/"):
            raise ConfigurationError(f"Plugin reference must be a relative path, got '{plugin}'")
        if repository.count("/") != 1:
            raise ConfigurationError(
                f"Repository must be in the form 'owner/repo', got '{repository}'"
            )
        if not slug:
            slug = posixpath.dirname(plugin) or posixpath.splitext(plugin)[0]
        return cls(plugin=plugin, repository=repository, slug=slug)

    @property
    def plugin_dir(self) -> str:
        """Directory part of the plugin reference (empty for a single-file plugin)."""
        return posixpath.dirname(self.plugin)


@dataclass(frozen=True)
class Configuration:
    """Per-identity options with explicit defaults."""

    token: Optional[str] = None
    prefer_json: bool = Constants.DEFAULT_PREFER_JSON
    cache_duration: int = Constants.DEFAULT_CACHE_DURATION_SEC
    timeout: int = Constants.DEFAULT_REQUEST_TIMEOUT
    max_file_size: int = Constants.DEFAULT_MAX_FILE_SIZE
    slug: Optional[str] = None

    # Alternate option names accepted from host-side option mappings.
    ALIASES = {"auth": "token"}

    def __post_init__(self) -> None:
        if not isinstance(self.prefer_json, bool):
            raise ConfigurationError("prefer_json must be a boolean")
        for name in ("cache_duration", "timeout", "max_file_size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]] = None) -> "Configuration":
        """Build a Configuration from loose options; unknown keys are rejected.

        When no token is given, the GITHUB_TOKEN environment variable is used.
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        unknown: List[str] = []
        for key, value in (options or {}).items():
            name = cls.ALIASES.get(key, key)
            if name not in known:
                unknown.append(key)
                continue
            values[name] = value
        if unknown:
            raise ConfigurationError(f"Unknown configuration option(s): {', '.join(sorted(unknown))}")

        if not values.get("token"):
            values["token"] = os.environ.get(Constants.ENV_GITHUB_TOKEN) or None
        return cls(**values)


@dataclass
class Asset:
    """A downloadable file attached to a release."""

    name: str
    download_url: str
    size: int = 0


@dataclass
class RawRelease:
    """Latest release as reported by the provider API."""

    tag_name: str
    published_at: str = ""
    assets: List[Asset] = field(default_factory=list)
    name: str = ""
    body: str = ""

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "RawRelease":
        """Build from a GitHub ``releases/latest`` payload."""
        assets = []
        for item in payload.get("assets") or []:
            if not isinstance(item, Mapping):
                continue
            assets.append(
                Asset(
                    name=str(item.get("name") or ""),
                    download_url=str(item.get("browser_download_url") or ""),
                    size=int(item.get("size") or 0),
                )
            )
        return cls(
            tag_name=str(payload.get("tag_name") or ""),
            published_at=str(payload.get("published_at") or ""),
            assets=assets,
            name=str(payload.get("name") or ""),
            body=str(payload.get("body") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RawRelease":
        return cls(
            tag_name=data.get("tag_name", ""),
            published_at=data.get("published_at", ""),
            assets=[Asset(**a) for a in data.get("assets", [])],
            name=data.get("name", ""),
            body=data.get("body", ""),
        )

    def asset_names(self) -> List[str]:
        return [a.name for a in self.assets]


# plugin.json / header field names mapped onto ResolvedMetadata attributes
METADATA_KEY_ALIASES = {
    "tested": "tested_up_to",
    "requires": "minimum_host_version",
    "requires_php": "minimum_runtime_version",
    "author_profile": "author_profile_url",
    "download_link": "download_url",
    "trunk": "trunk_url",
}


@dataclass
class ResolvedMetadata:
    """Canonical description of the latest available release.

    Optional fields are always strings or dicts, never None.
    """

    name: str
    slug: str
    version: str
    tested_up_to: str = ""
    minimum_host_version: str = ""
    minimum_runtime_version: str = ""
    author: str = ""
    author_profile_url: str = ""
    last_updated: str = ""
    download_url: str = ""
    trunk_url: str = ""
    sections: Dict[str, str] = field(default_factory=dict)
    banners: Dict[str, str] = field(default_factory=dict)
    icons: Dict[str, str] = field(default_factory=dict)
    upgrade_notice: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ResolvedMetadata":
        """Build from a loosely typed mapping (plugin.json or a cached record).

        Unknown keys are ignored; missing or null values become empty
        strings / empty dicts.
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in data.items():
            name = METADATA_KEY_ALIASES.get(key, key)
            if name not in known:
                continue
            # canonical names win over sidecar aliases when both are present
            if name in values and key != name:
                continue
            values[name] = value

        for f in fields(cls):
            if f.name in ("sections", "banners", "icons"):
                values[f.name] = _str_mapping(values.get(f.name))
            else:
                values[f.name] = _str_value(values.get(f.name))
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class UpdateDecision:
    """Update record handed to the host when a newer usable release exists."""

    id: str
    slug: str
    plugin: str
    new_version: str
    package_url: str
    tested_up_to: str = ""
    host_url: str = ""
    minimum_host_version: str = ""
    available: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _str_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _str_mapping(value: Any) -> Dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): _str_value(v) for k, v in value.items() if v is not None}
