#!/usr/bin/env python3
"""
Check that a packaged JRE actually runs.

Usage:
    python -m static_jre.verify openjdk-17-jre-freebsd-amd64-static.tar.gz
    verify-jre-archive            # archive name derived from $OPENJDK_VERSION
"""

import argparse
import shutil
import sys
import tarfile
from pathlib import Path

from .config import BuildConfig
from .console import error, list_directory, log, print_section
from .errors import BuildError
from .runner import CommandRunner


def java_binary(jre_dir: Path) -> Path:
    return Path(jre_dir) / "bin" / "java"


def verify_build(jre_dir: Path, runner: CommandRunner) -> None:
    """
    Run `java -version` and list the binary's shared-library dependencies.

    Raises:
        BuildError: if bin/java is missing, not executable, or fails to run
    """
    print_section("VERIFYING BUILD")

    java = java_binary(jre_dir)
    if not java.is_file() or not java.stat().st_mode & 0o111:
        raise BuildError(f"Java binary not found or not executable: {java}")

    result = runner.run([str(java), "-version"], check=False, capture=True)
    # java -version writes to stderr
    version_output = ((result.stdout or "") + (result.stderr or "")).strip()
    if version_output:
        print(version_output)
    if result.returncode != 0:
        raise BuildError(f"{java} -version exited with code {result.returncode}")
    log("Java binary is working")

    print("Checking dependencies:")
    deps = runner.run(["ldd", str(java)], check=False, capture=True)
    if deps.returncode == 0 and (deps.stdout or "").strip():
        print(deps.stdout.rstrip())
    else:
        print("Static binary - no dynamic dependencies")


def extract_archive(archive_path: Path, extract_dir: Path) -> Path:
    """Extract a .tar.gz or .tar.zst JRE archive into a fresh directory."""
    archive_path = Path(archive_path)
    extract_dir = Path(extract_dir)

    if extract_dir.exists():
        shutil.rmtree(extract_dir)
    extract_dir.mkdir(parents=True)

    if archive_path.name.endswith(".tar.zst"):
        try:
            import zstandard as zstd
        except ImportError as e:
            raise ImportError("zstandard module required!\n" "Install with: pip install zstandard") from e

        dctx = zstd.ZstdDecompressor()
        with open(archive_path, "rb") as ifh, dctx.stream_reader(ifh) as reader:
            with tarfile.open(fileobj=reader, mode="r|") as tar:
                tar.extractall(extract_dir, filter="data")
    else:
        with tarfile.open(archive_path, "r:*") as tar:
            tar.extractall(extract_dir, filter="data")

    return extract_dir


def verify_archive(archive_path: Path, extract_dir: Path, runner: CommandRunner) -> None:
    """
    Extract the archive and verify the JRE inside it.

    Raises:
        BuildError: if the archive is missing or the extracted JRE does not run
    """
    archive_path = Path(archive_path)
    if not archive_path.is_file():
        raise BuildError(f"Build failed - no artifact found at {archive_path}")

    log("Build artifact created successfully")
    size_mb = archive_path.stat().st_size / (1024 * 1024)

    extract_archive(archive_path, extract_dir)
    verify_build(extract_dir, runner)

    print(f"Archive size: {size_mb:.1f} MB")


def main() -> None:
    """Entry point for the CI verify stage."""
    parser = argparse.ArgumentParser(description="Extract and smoke-test a static JRE archive")
    parser.add_argument(
        "archive",
        type=Path,
        nargs="?",
        help="Archive to verify (default: name derived from $OPENJDK_VERSION and host architecture)",
    )
    parser.add_argument("--extract-dir", type=Path, default=Path("test-jre"), help="Extraction directory")
    parser.add_argument(
        "--compression", choices=["gzip", "zstd"], default=None, help="Compression used for the default archive name"
    )

    args = parser.parse_args()

    try:
        archive = args.archive
        if archive is None:
            archive = BuildConfig.from_env(compression=args.compression).archive_path()
        verify_archive(archive, args.extract_dir, CommandRunner())
    except BuildError as e:
        error(str(e))
        list_directory(Path.cwd())
        sys.exit(1)

    print("\n✅ JRE archive verified")


if __name__ == "__main__":
    main()
