"""
Install the bootstrap JDK and the build dependencies for an OpenJDK build.

Essential packages are required: a failed install aborts the run. Optional
packages (fonts, X11, audio, printing) are only warned about.
"""

import os

from .config import BuildConfig
from .console import log, print_section, warn
from .errors import BuildError
from .pkg_repos import fix_repositories
from .runner import CommandRunner

# Build tooling needed in addition to the bootstrap JDK
ESSENTIAL_PACKAGES = [
    "gmake",
    "autoconf",
    "automake",
    "libtool",
    "pkgconf",
    "bash",
    "zip",
    "unzip",
    "git",
    "curl",
    "wget",
]

# Desktop and media libraries; the JRE builds without them in headless mode
OPTIONAL_PACKAGES = [
    "freetype2",
    "fontconfig",
    "libX11",
    "libXext",
    "libXi",
    "libXrender",
    "libXrandr",
    "libXtst",
    "alsa-lib",
    "cups",
]

# Expected in the base system; absence is only reported
BASE_COMMANDS = ["which", "make"]

REQUIRED_MAKE = "gmake"


def check_root() -> None:
    """Package installation needs root."""
    if os.geteuid() != 0:
        raise BuildError("This script must be run as root for package installation")


def install_packages(config: BuildConfig, runner: CommandRunner, packages: list[str], timeout: int | None) -> bool:
    cmd = ["pkg", "install", "-y", *packages]
    return runner.succeeds(cmd, env=config.pkg_env(), timeout=timeout)


def verify_essential_tools(runner: CommandRunner) -> None:
    """
    Check the commands the build relies on.

    Raises:
        BuildError: if gmake is not on PATH
    """
    log("Verifying essential tools...")

    for name in BASE_COMMANDS:
        if runner.which(name):
            log(f"✓ {name} available")
        else:
            warn(f"{name} not found in base system")

    if not runner.which(REQUIRED_MAKE):
        raise BuildError(f"{REQUIRED_MAKE} not installed - this is required for OpenJDK build")
    log(f"✓ {REQUIRED_MAKE} available")


def install_dependencies(config: BuildConfig, runner: CommandRunner) -> None:
    """
    Prepare the host: repositories, bootstrap JDK, build tools, optional libraries.

    Repository problems are tolerated so that a host with a working catalogue
    can still proceed; a failed essential install is not.
    """
    print_section("INSTALLING BUILD DEPENDENCIES")

    if not fix_repositories(config, runner):
        warn("Package repository fix failed, continuing anyway...")

    log("Updating package database with timeout...")
    if not runner.succeeds(["pkg", "update", "-f"], env=config.pkg_env(), timeout=config.update_timeout):
        warn("Package update timed out or failed, continuing anyway...")

    bootstrap = config.bootstrap_jdk
    log(f"Using bootstrap JDK: {bootstrap.package} at {bootstrap.path}")

    log("Installing essential build tools...")
    if not install_packages(config, runner, [bootstrap.package, *ESSENTIAL_PACKAGES], config.install_timeout):
        raise BuildError("Failed to install essential build tools")

    log("Installing additional libraries (optional)...")
    if not install_packages(config, runner, OPTIONAL_PACKAGES, config.optional_install_timeout):
        warn("Some additional libraries failed to install, continuing anyway...")

    verify_essential_tools(runner)
    log("Dependencies installed successfully")
