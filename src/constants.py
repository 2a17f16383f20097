"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    RESOLUTION_ERROR = 2
    EXIT_WARNINGS = 3


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    DEFAULT_JOBS = 20
    DEFAULT_DIR = "./"
    DEFAULT_OUTFILE = "deps.nix"
    CONFIG_FILES = ["vgo2nix.yml", "vgo2nix.yaml"]
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
    ENV_LOG_LEVEL = "VGO2NIX_LOG_LEVEL"
    ENV_LOG_FMT = "VGO2NIX_LOG_FMT"

    # nix-prefetch-git reports this hash when a revision resolves to no content
    EMPTY_SHA256 = "0sjjj9z1dhilhpc8pq4154czrb79z9cm044jvn75kxcjv6v5l2m5"
    PREFETCH_COMMAND = "nix-prefetch-git"
    GO_COMMAND = "go"
    MANIFEST_HEADER = (
        "# file generated from go.mod using vgo2nix "
        "(https://github.com/adisbladis/vgo2nix)"
    )

    # Repository metadata lookups
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    HTTP_CACHE_TTL_SEC = 300
    USER_AGENT = "vgo2nix/1.0"
    GO_GET_QUERY = "?go-get=1"
    KNOWN_HOSTS = ["github.com", "gitlab.com", "bitbucket.org"]
