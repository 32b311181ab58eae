"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    RESOLUTION_FAILED = 1
    CONFIG_ERROR = 2
    NO_UPDATE = 3


class FailureKind(Enum):
    """Failure taxonomy shared by the fetcher, validator and resolver paths.

    Args:
        Enum (string): Machine-readable failure kind.
    """

    # transport / upstream / data
    NETWORK_ERROR = "network-error"
    HTTP_ERROR = "http-error"
    EMPTY_BODY = "empty-body"
    MALFORMED_JSON = "malformed-json"
    MISSING_FIELDS = "missing-fields"
    # archive validation
    FILE_NOT_FOUND = "file_not_found"
    FILE_TOO_LARGE = "file_too_large"
    FILE_READ_ERROR = "file_read_error"
    INVALID_FILE_TYPE = "invalid_file_type"
    INVALID_ZIP_SIGNATURE = "invalid_zip_signature"
    ZIP_INTEGRITY_FAILED = "zip_integrity_failed"
    # archive handling
    EXTRACTION_FAILED = "extraction-failed"
    LAYOUT_MISMATCH = "archive-layout-mismatch"
    FILESYSTEM = "filesystem"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "PLUGIN_UPDATER_LOG_LEVEL"
    USER_AGENT = "plugin-updater/1.0"

    # Repository API constants
    GITHUB_API_BASE = "https://api.github.com"
    GITHUB_ID_PREFIX = "github.com"
    ENV_GITHUB_TOKEN = "GITHUB_TOKEN"

    # Configuration defaults
    DEFAULT_PREFER_JSON = True
    DEFAULT_CACHE_DURATION_SEC = 21600  # 6 hours
    DEFAULT_REQUEST_TIMEOUT = 30
    DEFAULT_MAX_FILE_SIZE = 52428800  # 50MB

    # Cache key prefixes, namespaced by slug
    CACHE_RELEASE = "release"
    CACHE_JSON = "json"
    CACHE_ARCHIVE = "archive"
    CACHE_KINDS = (CACHE_RELEASE, CACHE_JSON, CACHE_ARCHIVE)

    METADATA_ASSET_NAME = "plugin.json"
    GENERIC_ARCHIVE_NAMES = ("latest.zip", "plugin.zip")
    REQUIRED_JSON_FIELDS = ("name", "version", "slug")

    # PK\x03\x04 (normal), PK\x05\x06 (empty), PK\x07\x08 (spanned)
    ZIP_SIGNATURES = (
        b"\x50\x4b\x03\x04",
        b"\x50\x4b\x05\x06",
        b"\x50\x4b\x07\x08",
    )
    ZIP_MIME_TYPES = ("application/zip", "application/x-zip-compressed")

    SECTION_FILES = {
        "description": ("description.md", "description.txt", "README.md"),
        "installation": ("installation.md", "installation.txt", "INSTALL.md"),
        "faq": ("faq.md", "faq.txt", "FAQ.md"),
        "changelog": ("changelog.md", "changelog.txt", "CHANGELOG.md", "CHANGES.md"),
        "screenshots": ("screenshots.md", "screenshots.txt"),
        "other_notes": ("notes.md", "notes.txt", "NOTES.md"),
    }

    TEMP_PREFIX = "plugin-updater-"
    DOWNLOAD_CHUNK_SIZE = 65536
    LOG_EXCERPT_CHARS = 500
