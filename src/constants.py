"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    VERIFICATION_FAILED = 1
    CONNECTION_ERROR = 2
    UNVERIFIED = 3
    FILE_ERROR = 4


class Category(Enum):
    """Artifact categories, matching the checksum database sections.

    Args:
        Enum (string): Category name used on the CLI and in logs.
    """

    LANGUAGE = "language"
    TOOL = "tool"

    @property
    def section(self) -> str:
        """Top-level checksum database key for this category."""
        return "languages" if self is Category.LANGUAGE else "tools"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "VERGATE_LOG_LEVEL"

    # Network tunables; connect/total are upper bounds as well as defaults
    CONNECT_TIMEOUT = 10
    REQUEST_TIMEOUT = 30
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    DOWNLOAD_TIMEOUT = 600  # whole-artifact downloads
    HTTP_CACHE_TTL_SEC = 300
    INDEX_CACHE_TTL_SEC = 600
    USER_AGENT = "vergate/1.0"

    # Repository API constants
    GITHUB_API_BASE = "https://api.github.com"
    ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
    REPO_API_PER_PAGE = 100
    REPO_API_MAX_PAGES = 5

    # Trust store locations
    DEFAULT_CHECKSUMS_DB = "/tmp/build-scripts/checksums.json"
    DEFAULT_KEYRING_DIR = "/tmp/build-scripts/gpg-keys"
    ENV_CHECKSUMS_DB = "VERGATE_CHECKSUMS_DB"
    ENV_KEYRING_DIR = "VERGATE_KEYRING_DIR"
    ENV_CONNECT_TIMEOUT = "VERGATE_CONNECT_TIMEOUT"
    ENV_TOTAL_TIMEOUT = "VERGATE_TOTAL_TIMEOUT"
    ENV_REQUIRE_VERIFIED = "REQUIRE_VERIFIED_DOWNLOADS"
    ENV_PRODUCTION_MODE = "PRODUCTION_MODE"

    # Digests stored in the database that mean "no checksum yet"
    CHECKSUM_SENTINELS = frozenset(
        {
            "",
            "null",
            "placeholder_to_be_added",
            "placeholder_actual_checksum_needed",
            "MANUAL_VERIFICATION_NEEDED",
        }
    )

    DEFAULT_ARCH = "amd64"
    GPG_BINARY = "gpg"
    COSIGN_BINARY = "cosign"
    SUBPROCESS_TIMEOUT = 60
