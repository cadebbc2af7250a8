#!/usr/bin/env python3
"""
Build a statically linked OpenJDK JRE on FreeBSD.

This script runs the whole job:
1. Installs the bootstrap JDK and build dependencies with pkg
2. Shallow-clones the OpenJDK updates repository for the target version
3. Configures the build with static-link flags
4. Builds the images target with one job per CPU
5. Copies the JDK image and prunes it to a JRE
6. Strips binaries, writes VERSION and creates
   openjdk-{version}-jre-freebsd-{arch}-static.tar.gz
7. Runs the packaged java binary

Usage:
    build-static-jre
    build-static-jre --version 21 --cleanup
    OPENJDK_VERSION=11 python -m static_jre

Note: Ctrl+C (or SIGTERM) removes the build directory before exiting.
"""

import argparse
import shutil
import signal
import sys
import traceback
from pathlib import Path

from .build import build_jdk, configure_build
from .config import BuildConfig, select_source_repository
from .console import error, list_directory, log, print_section
from .dependencies import check_root, install_dependencies
from .distribution import create_jre_dist
from .errors import BuildError
from .package import package_jre
from .runner import CommandRunner
from .source import download_source, source_revision
from .verify import verify_build


class BuildPipeline:
    """Prepare -> Fetch -> Configure -> Build -> Assemble -> Package -> Verify."""

    def __init__(self, config: BuildConfig, runner: CommandRunner, skip_deps: bool = False):
        self.config = config
        self.runner = runner
        self.skip_deps = skip_deps

        self.source_dir: Path | None = None
        self.archive_path: Path | None = None

    def prepare(self) -> None:
        if self.skip_deps:
            log("Skipping dependency installation")
            return
        check_root()
        install_dependencies(self.config, self.runner)

    def fetch(self) -> None:
        self.source_dir = download_source(self.config, self.runner)

    def configure(self) -> None:
        configure_build(self.config, self.source_dir, self.runner)

    def build(self) -> None:
        build_jdk(self.config, self.source_dir, self.runner)

    def assemble(self) -> None:
        create_jre_dist(self.config, self.source_dir)

    def package(self) -> None:
        revision = source_revision(self.source_dir, self.runner)
        self.archive_path = package_jre(self.config, self.runner, revision=revision)

    def verify(self) -> None:
        verify_build(self.config.output_dir, self.runner)

    def steps(self):
        return [
            self.prepare,
            self.fetch,
            self.configure,
            self.build,
            self.assemble,
            self.package,
            self.verify,
        ]

    def run(self) -> Path:
        """
        Run every step in order; the first failure propagates.

        Returns:
            Path to the created archive
        """
        # Reject unsupported versions before anything touches the host or network
        select_source_repository(self.config.openjdk_version)

        log(f"Starting FreeBSD Static JRE build process for OpenJDK {self.config.openjdk_version}...")
        for step in self.steps():
            step()
        return self.archive_path

    def cleanup(self) -> None:
        """Remove the temporary build directory."""
        build_dir = Path(self.config.build_dir)
        if build_dir.exists():
            log(f"Cleaning up build directory {build_dir}...")
            shutil.rmtree(build_dir, ignore_errors=True)


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt(f"received signal {signum}")


def install_signal_handlers() -> None:
    """Treat SIGTERM like Ctrl+C so both reach the cleanup path."""
    signal.signal(signal.SIGTERM, _raise_interrupt)


def run_build(pipeline: BuildPipeline, cleanup: bool = False) -> int:
    """
    Run a pipeline and translate the outcome into a process exit code.

    Returns:
        0 on success, 1 on a build failure, 130 when interrupted
    """
    try:
        archive = pipeline.run()
    except KeyboardInterrupt:
        print("\n\n" + "=" * 70)
        print("❌ BUILD INTERRUPTED")
        print("=" * 70)
        pipeline.cleanup()
        return 130
    except BuildError as e:
        error(str(e))
        print("Build failed. Checking what files were created:")
        list_directory(Path.cwd())
        return 1
    except Exception as e:
        error(f"Unexpected error: {e}")
        traceback.print_exc()
        return 1

    print_section("SUCCESS!")
    log("Build process completed successfully!")
    log(f"JRE archive: {archive}")
    log(f"JRE directory: {pipeline.config.output_dir}")

    if cleanup:
        pipeline.cleanup()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Build a statically linked OpenJDK JRE on FreeBSD",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  OPENJDK_VERSION    Target version (8, 11, 17, 21; default 17)
  FETCH_TIMEOUT      pkg fetch timeout in seconds (default 60)
  FETCH_RETRY        Attempt budget for pkg bootstrap/update (default 3)
  ASSUME_ALWAYS_YES  Non-interactive pkg (default yes)
        """,
    )
    parser.add_argument("--version", default=None, help="OpenJDK version (default: $OPENJDK_VERSION or 17)")
    parser.add_argument("--build-dir", type=Path, default=None, help="Temporary build directory")
    parser.add_argument("--output-dir", type=Path, default=None, help="JRE output directory (default: ./jre-static)")
    parser.add_argument("--archive-dir", type=Path, default=None, help="Directory for the archive (default: cwd)")
    parser.add_argument("--compression", choices=["gzip", "zstd"], default=None, help="Archive compression")
    parser.add_argument("--skip-deps", action="store_true", help="Skip pkg setup (host already provisioned)")
    parser.add_argument("--cleanup", action="store_true", help="Remove the build directory after success")

    args = parser.parse_args()

    try:
        config = BuildConfig.from_env(
            openjdk_version=args.version,
            build_dir=args.build_dir,
            output_dir=args.output_dir,
            archive_dir=args.archive_dir,
            compression=args.compression,
        )
    except BuildError as e:
        error(str(e))
        sys.exit(1)

    install_signal_handlers()
    pipeline = BuildPipeline(config, CommandRunner(), skip_deps=args.skip_deps)
    sys.exit(run_build(pipeline, cleanup=args.cleanup))


if __name__ == "__main__":
    main()
