"""
Build configuration for the static JRE pipeline.

The configuration is assembled once at start-up from the constants below,
the environment (OPENJDK_VERSION, FETCH_TIMEOUT, FETCH_RETRY,
ASSUME_ALWAYS_YES, BUILD_DIR, OUTPUT_DIR) and command-line flags, and is
read-only from then on.
"""

import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, NamedTuple

from .console import warn
from .errors import BuildError

# ============================================================================
# Defaults
# ============================================================================

DEFAULT_OPENJDK_VERSION = "17"
DEFAULT_BUILD_DIR = Path("/tmp/openjdk-build")
DEFAULT_INSTALL_PREFIX = Path("/usr/local")
DEFAULT_PKG_REPOS_DIR = Path("/usr/local/etc/pkg/repos")

PRODUCT = "openjdk"
TARGET_PLATFORM = "freebsd"

PRIMARY_CHANNEL = "quarterly"
FALLBACK_CHANNEL = "latest"

COMPRESSION_SUFFIXES = {
    "gzip": ".tar.gz",
    "zstd": ".tar.zst",
}


class BootstrapJdk(NamedTuple):
    package: str
    path: Path


class SourceRepository(NamedTuple):
    name: str
    url: str


# Target version -> bootstrap JDK package. A release N builds with N-1 or
# later; 8 and 11 use the next LTS because older packages are gone.
BOOTSTRAP_JDKS: Mapping[str, str] = {
    "8": "openjdk11",
    "11": "openjdk17",
    "17": "openjdk17",
    "21": "openjdk21",
}
FALLBACK_BOOTSTRAP_JDK = "openjdk17"

# Target version -> OpenJDK updates repository
SOURCE_REPOSITORIES: Mapping[str, str] = {
    "8": "jdk8u",
    "11": "jdk11u",
    "17": "jdk17u",
    "21": "jdk21u",
}
SOURCE_URL_TEMPLATE = "https://github.com/openjdk/{name}.git"


# ============================================================================
# Lookups
# ============================================================================


def select_bootstrap_jdk(version: str, install_prefix: Path = DEFAULT_INSTALL_PREFIX) -> BootstrapJdk:
    """
    Pick the bootstrap JDK package used to build the given OpenJDK version.

    Unknown versions fall back to FALLBACK_BOOTSTRAP_JDK with a warning.
    """
    package = BOOTSTRAP_JDKS.get(version)
    if package is None:
        warn(f"Unknown OpenJDK version {version}, defaulting to {FALLBACK_BOOTSTRAP_JDK} as bootstrap")
        package = FALLBACK_BOOTSTRAP_JDK
    return BootstrapJdk(package, Path(install_prefix) / package)


def select_source_repository(version: str) -> SourceRepository:
    """Return the upstream repository for a version, or raise BuildError."""
    name = SOURCE_REPOSITORIES.get(version)
    if name is None:
        supported = ", ".join(sorted(SOURCE_REPOSITORIES, key=int))
        raise BuildError(f"Unsupported OpenJDK version: {version} (supported: {supported})")
    return SourceRepository(name, SOURCE_URL_TEMPLATE.format(name=name))


def archive_name(version: str, arch: str, compression: str = "gzip") -> str:
    """
    Name of the final archive.

    >>> archive_name("17", "amd64")
    'openjdk-17-jre-freebsd-amd64-static.tar.gz'
    """
    if compression not in COMPRESSION_SUFFIXES:
        raise ValueError(f"Unsupported compression: {compression}")
    return f"{PRODUCT}-{version}-jre-{TARGET_PLATFORM}-{arch}-static{COMPRESSION_SUFFIXES[compression]}"


def host_arch() -> str:
    """Machine hardware name, as `uname -m` reports it."""
    return platform.machine() or "unknown"


def host_os_version(runner=None) -> str:
    """FreeBSD userland version, falling back to the kernel release."""
    if runner is not None and runner.which("freebsd-version"):
        version = runner.output(["freebsd-version"])
        if version:
            return version
    return platform.release()


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise BuildError(f"{name} must be an integer, got {raw!r}") from e


def _env_flag(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "yes", "true", "on")


# ============================================================================
# Configuration
# ============================================================================


@dataclass(frozen=True)
class BuildConfig:
    """Parameters shared by every pipeline step."""

    openjdk_version: str = DEFAULT_OPENJDK_VERSION
    build_dir: Path = DEFAULT_BUILD_DIR
    install_prefix: Path = DEFAULT_INSTALL_PREFIX
    output_dir: Path = field(default_factory=lambda: Path.cwd() / "jre-static")
    archive_dir: Path = field(default_factory=Path.cwd)
    pkg_repos_dir: Path = DEFAULT_PKG_REPOS_DIR

    # Network tuning, also exported to pkg which reads the same variables
    fetch_timeout: int = 60
    fetch_retry: int = 3
    retry_backoff: float = 10
    assume_yes: bool = True

    # Step timeouts in seconds (None disables)
    bootstrap_timeout: int | None = 300
    update_timeout: int | None = 300
    install_timeout: int | None = 600
    optional_install_timeout: int | None = 300
    configure_timeout: int | None = None
    build_timeout: int | None = 7200

    primary_channel: str = PRIMARY_CHANNEL
    fallback_channel: str = FALLBACK_CHANNEL

    vendor_name: str = "FreeBSD-Static-Build"
    vendor_url: str = "https://github.com/your-repo"
    vendor_bug_url: str = "https://github.com/your-repo/issues"

    compression: str = "gzip"
    zstd_level: int = 19

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> "BuildConfig":
        """Build a configuration from environment variables plus explicit overrides."""
        if environ is None:
            environ = os.environ

        values: dict = {
            "openjdk_version": environ.get("OPENJDK_VERSION") or DEFAULT_OPENJDK_VERSION,
            "fetch_timeout": _env_int(environ, "FETCH_TIMEOUT", 60),
            "fetch_retry": _env_int(environ, "FETCH_RETRY", 3),
            "assume_yes": _env_flag(environ, "ASSUME_ALWAYS_YES", True),
        }
        if environ.get("BUILD_DIR"):
            values["build_dir"] = Path(environ["BUILD_DIR"])
        if environ.get("OUTPUT_DIR"):
            values["output_dir"] = Path(environ["OUTPUT_DIR"])

        values.update({k: v for k, v in overrides.items() if v is not None})
        config = cls(**values)
        if config.fetch_retry < 1:
            raise BuildError(f"FETCH_RETRY must be at least 1, got {config.fetch_retry}")
        if config.compression not in COMPRESSION_SUFFIXES:
            raise BuildError(f"Unsupported compression: {config.compression}")
        return config

    @property
    def bootstrap_jdk(self) -> BootstrapJdk:
        return select_bootstrap_jdk(self.openjdk_version, self.install_prefix)

    @property
    def source_repository(self) -> SourceRepository:
        return select_source_repository(self.openjdk_version)

    @property
    def version_string(self) -> str:
        return f"{self.openjdk_version}.0.0-freebsd-static"

    def archive_path(self, arch: str | None = None) -> Path:
        return self.archive_dir / archive_name(self.openjdk_version, arch or host_arch(), self.compression)

    def pkg_env(self, base: Mapping[str, str] | None = None) -> dict[str, str]:
        """Environment for pkg(8) invocations."""
        env = dict(os.environ if base is None else base)
        env["FETCH_TIMEOUT"] = str(self.fetch_timeout)
        env["FETCH_RETRY"] = str(self.fetch_retry)
        if self.assume_yes:
            env["ASSUME_ALWAYS_YES"] = "yes"
        return env
