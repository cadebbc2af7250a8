"""
Configure and build OpenJDK with static linking.

Both steps delegate to the upstream build system: `bash configure` with a
fixed flag set, then `gmake images` sized to the host CPU count.
"""

import os
from pathlib import Path
from typing import Mapping

from .config import BootstrapJdk, BuildConfig
from .console import log, print_section
from .errors import BuildError
from .runner import CommandRunner

STATIC_FLAG = "-static"


def static_link_env(config: BuildConfig, base_env: Mapping[str, str] | None = None) -> dict[str, str]:
    """Compiler and linker environment forcing static linking."""
    env = dict(os.environ if base_env is None else base_env)
    prefix = Path(config.install_prefix)
    env.update(
        {
            "CC": "clang",
            "CXX": "clang++",
            "LDFLAGS": f"{STATIC_FLAG} -L{prefix / 'lib'}",
            "CFLAGS": f"{STATIC_FLAG} -I{prefix / 'include'}",
            "CXXFLAGS": f"{STATIC_FLAG} -I{prefix / 'include'}",
            "PKG_CONFIG_PATH": str(prefix / "lib" / "pkgconfig"),
        }
    )
    return env


def configure_arguments(config: BuildConfig, bootstrap: BootstrapJdk) -> list[str]:
    return [
        f"--with-boot-jdk={bootstrap.path}",
        "--with-native-debug-symbols=none",
        "--with-debug-level=release",
        "--with-toolchain-type=clang",
        "--disable-warnings-as-errors",
        f"--with-extra-ldflags={STATIC_FLAG}",
        f"--with-extra-cflags={STATIC_FLAG}",
        f"--with-extra-cxxflags={STATIC_FLAG}",
        f"--prefix={config.install_prefix}",
        f"--with-version-string={config.version_string}",
        f"--with-vendor-name={config.vendor_name}",
        f"--with-vendor-url={config.vendor_url}",
        f"--with-vendor-bug-url={config.vendor_bug_url}",
    ]


def configure_build(config: BuildConfig, source_dir: Path, runner: CommandRunner) -> None:
    """
    Run the upstream configure script.

    Raises:
        BuildError: if the bootstrap JDK is not installed or configure fails
    """
    print_section("CONFIGURING OPENJDK BUILD")

    bootstrap = config.bootstrap_jdk
    if not Path(bootstrap.path).is_dir():
        raise BuildError(f"Bootstrap JDK not found at {bootstrap.path}")

    cmd = ["bash", "configure", *configure_arguments(config, bootstrap)]
    runner.run(cmd, cwd=source_dir, env=static_link_env(config), timeout=config.configure_timeout)
    log("Build configured successfully")


def build_parallelism() -> int:
    return os.cpu_count() or 1


def build_jdk(config: BuildConfig, source_dir: Path, runner: CommandRunner) -> None:
    """Build the images target."""
    print_section("BUILDING OPENJDK")

    jobs = build_parallelism()
    log(f"Building OpenJDK with {jobs} jobs (this may take 30+ minutes)...")
    runner.run(
        ["gmake", f"JOBS={jobs}", "images"],
        cwd=source_dir,
        env=static_link_env(config),
        timeout=config.build_timeout,
    )
    log("Build completed successfully")
