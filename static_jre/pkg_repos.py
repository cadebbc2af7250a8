#!/usr/bin/env python3
"""
Bring the FreeBSD package database to a servable state.

CI images often ship a pkg configuration whose quarterly channel has no
packages for the running point release. This module rewrites the repository
configuration, bootstraps pkg and refreshes the catalogue, falling back from
the quarterly channel to latest when an update fails.

Usage:
    python -m static_jre.pkg_repos
    pkg-fix --retries 3
"""

import argparse
import sys
import time
from pathlib import Path
from typing import Callable

from .config import BuildConfig, host_arch, host_os_version
from .console import error, list_directory, log, print_section, warn
from .errors import BuildError
from .runner import CommandRunner

REPO_CONF_NAME = "FreeBSD.conf"

REPO_CONF_TEMPLATE = """FreeBSD: {{
    url: "pkg+http://pkg.FreeBSD.org/${{ABI}}/{channel}",
    mirror_type: "srv",
    signature_type: "fingerprints",
    fingerprints: "/usr/share/keys/pkg",
    enabled: yes
}}
"""


def render_repo_config(channel: str) -> str:
    """Repository configuration pointing at the given channel."""
    return REPO_CONF_TEMPLATE.format(channel=channel)


def write_repo_config(repos_dir: Path, channel: str) -> Path:
    """
    Write FreeBSD.conf for a channel, keeping a one-time backup of the original.

    Args:
        repos_dir: pkg repository configuration directory
        channel: Package channel ("quarterly" or "latest")

    Returns:
        Path of the written configuration file
    """
    repos_dir = Path(repos_dir)
    repos_dir.mkdir(parents=True, exist_ok=True)
    conf = repos_dir / REPO_CONF_NAME
    backup = repos_dir / f"{REPO_CONF_NAME}.backup"

    if conf.exists() and not backup.exists():
        backup.write_text(conf.read_text())

    conf.write_text(render_repo_config(channel))
    log(f"Repository configuration set to '{channel}' channel ({conf})")
    return conf


def retry(action: Callable[[], bool], attempts: int, backoff: float, description: str) -> bool:
    """
    Run an action until it succeeds or the attempt budget runs out.

    Every failed attempt is logged; exhaustion is logged but not raised.
    """
    for attempt in range(1, attempts + 1):
        log(f"{description} (attempt {attempt}/{attempts})...")
        if action():
            return True
        if attempt < attempts:
            warn(f"{description} failed, retrying in {backoff:g}s...")
            time.sleep(backoff)
    warn(f"{description} failed after {attempts} attempts")
    return False


def detect_abi(runner: CommandRunner) -> str:
    abi = runner.output(["pkg", "config", "ABI"])
    if abi:
        return abi
    major = host_os_version(runner).split(".")[0]
    return f"FreeBSD:{major}:{host_arch()}"


def bootstrap_pkg(config: BuildConfig, runner: CommandRunner) -> bool:
    """Force-bootstrap pkg itself, with bounded retries."""
    env = config.pkg_env()
    env["ASSUME_ALWAYS_YES"] = "yes"
    return retry(
        lambda: runner.succeeds(["pkg", "bootstrap", "-f"], env=env, timeout=config.bootstrap_timeout),
        attempts=config.fetch_retry,
        backoff=config.retry_backoff,
        description="Bootstrapping pkg",
    )


def update_repositories(config: BuildConfig, runner: CommandRunner) -> bool:
    """
    Refresh the package catalogue, falling back to the alternate channel.

    The primary channel is tried up to ``fetch_retry - 1`` times, then the
    fallback channel is written and tried exactly once, so the total never
    exceeds ``fetch_retry`` attempts. A budget of one attempt only tries the
    primary channel.

    Returns:
        True if some channel updated successfully
    """
    env = config.pkg_env()
    update_cmd = ["pkg", "update", "-f"]
    total = config.fetch_retry
    primary_attempts = max(total - 1, 1)

    write_repo_config(config.pkg_repos_dir, config.primary_channel)
    for attempt in range(1, primary_attempts + 1):
        log(f"Updating package database from '{config.primary_channel}' (attempt {attempt}/{total})...")
        if runner.succeeds(update_cmd, env=env, timeout=config.update_timeout):
            log(f"✓ Package database updated from '{config.primary_channel}'")
            return True
        warn(f"Update from '{config.primary_channel}' failed or timed out")
        if attempt < total:
            time.sleep(config.retry_backoff)

    if primary_attempts >= total:
        warn(f"Package database update failed after {total} attempts")
        return False

    warn(f"'{config.primary_channel}' repository failed, trying '{config.fallback_channel}'...")
    write_repo_config(config.pkg_repos_dir, config.fallback_channel)
    log(f"Updating package database from '{config.fallback_channel}' (attempt {total}/{total})...")
    if runner.succeeds(update_cmd, env=env, timeout=config.update_timeout):
        log(f"✓ Package database updated from '{config.fallback_channel}'")
        return True

    warn(f"Package database update failed after {total} attempts")
    return False


def fix_repositories(config: BuildConfig, runner: CommandRunner) -> bool:
    """Show host details, bootstrap pkg and refresh the repositories."""
    print_section("FIXING PACKAGE REPOSITORY CONFIGURATION")

    print(f"FreeBSD version: {host_os_version(runner)}")
    print(f"Architecture: {host_arch()}")
    print(f"System ABI: {detect_abi(runner)}")
    print()

    bootstrapped = bootstrap_pkg(config, runner)
    if not bootstrapped:
        warn("pkg bootstrap did not succeed, attempting repository update anyway...")

    updated = update_repositories(config, runner)
    if updated:
        log("Package repository fix completed")
    return updated


def show_repo_status(runner: CommandRunner) -> None:
    """Print repository statistics. Informational only."""
    print_section("REPOSITORY STATUS")
    runner.succeeds(["pkg", "stats"])
    print()
    print("Available repositories:")
    listing = runner.output(["pkg", "-vv"])
    if listing and "Repositories:" in listing:
        print(listing[listing.index("Repositories:"):])


def check_pkg_install(config: BuildConfig, runner: CommandRunner) -> bool:
    """
    Smoke-test package installation with curl and report common commands.

    Returns:
        True if the test package installed
    """
    print_section("TESTING PACKAGE INSTALLATION")
    env = config.pkg_env()

    if not runner.succeeds(["pkg", "install", "-y", "curl"], env=env, timeout=config.install_timeout):
        error("Package installation test: FAILED")
        print("Debug information:")
        runner.succeeds(["pkg", "-vv"])
        return False

    log("Package installation test: SUCCESS")
    runner.succeeds(["pkg", "info", "curl"])

    print("Checking for required commands:")
    for name, note in (("which", ""), ("gmake", " (will be installed)"), ("git", " (will be installed)")):
        if runner.which(name):
            print(f"  ✓ {name} available")
        else:
            print(f"  ✗ {name} missing{note}")
    return True


def main() -> None:
    """Entry point for the standalone repository fix."""
    parser = argparse.ArgumentParser(description="Fix FreeBSD package repository configuration")
    parser.add_argument(
        "--repos-dir",
        type=Path,
        default=None,
        help="pkg repository configuration directory (default: /usr/local/etc/pkg/repos)",
    )
    parser.add_argument("--retries", type=int, default=None, help="Attempt budget (default: $FETCH_RETRY or 3)")
    parser.add_argument("--backoff", type=float, default=None, help="Seconds between attempts (default: 10)")
    parser.add_argument("--skip-test", action="store_true", help="Skip the package installation smoke test")

    args = parser.parse_args()

    try:
        config = BuildConfig.from_env(
            pkg_repos_dir=args.repos_dir,
            fetch_retry=args.retries,
            retry_backoff=args.backoff,
        )
        runner = CommandRunner()

        fix_repositories(config, runner)
        show_repo_status(runner)
        if not args.skip_test and not check_pkg_install(config, runner):
            raise BuildError("Package installation test failed")
    except BuildError as e:
        error(str(e))
        list_directory(Path.cwd())
        sys.exit(1)

    log("Package repository is now ready!")


if __name__ == "__main__":
    main()
