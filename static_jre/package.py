#!/usr/bin/env python3
"""
Package a JRE tree into a distributable archive.

1. Strips debug symbols from every executable (best effort)
2. Writes a VERSION metadata file into the tree
3. Creates openjdk-{version}-jre-freebsd-{arch}-static.tar.gz
   (or .tar.zst with zstd compression)
4. Writes a SHA256 checksum next to the archive

Requirements:
    - zstandard module for .tar.zst output: pip install zstandard
"""

import argparse
import hashlib
import os
import platform
import socket
import sys
import tarfile
from datetime import datetime
from pathlib import Path

from .config import BuildConfig, host_arch, host_os_version
from .console import error, log, print_section, warn
from .errors import BuildError
from .runner import CommandRunner

VERSION_FILE = "VERSION"


def find_executables(root: Path) -> list[Path]:
    """All regular files with an executable bit, symlinks excluded."""
    executables = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            path = Path(dirpath) / filename
            if path.is_symlink() or not path.is_file():
                continue
            if os.access(path, os.X_OK):
                executables.append(path)
    return sorted(executables)


def strip_binaries(output_dir: Path, runner: CommandRunner) -> tuple[int, int]:
    """
    Strip debug symbols from every executable in the tree.

    Failures (scripts, already-stripped files, a missing strip) are counted
    and otherwise ignored.

    Returns:
        (stripped, total) file counts
    """
    binaries = find_executables(Path(output_dir))
    print(f"Found {len(binaries)} executables to strip")

    success_count = 0
    for binary in binaries:
        if runner.succeeds(["strip", str(binary)], capture=True):
            success_count += 1

    print(f"Successfully stripped {success_count}/{len(binaries)} binaries")
    return success_count, len(binaries)


def render_version_file(
    version: str,
    built_on: str,
    arch: str,
    os_version: str,
    build_host: str,
    revision: str | None = None,
) -> str:
    lines = [
        f"FreeBSD Static OpenJDK {version} JRE",
        f"Built on: {built_on}",
        f"Architecture: {arch}",
        f"FreeBSD Version: {os_version}",
        f"Build Host: {build_host}",
    ]
    if revision:
        lines.append(f"Source Revision: {revision}")
    return "\n".join(lines) + "\n"


def write_version_file(
    config: BuildConfig,
    output_dir: Path,
    runner: CommandRunner,
    revision: str | None = None,
) -> Path:
    """Write the plain-text VERSION metadata file into the JRE tree."""
    content = render_version_file(
        version=config.openjdk_version,
        built_on=datetime.now().astimezone().strftime("%a %b %d %H:%M:%S %Z %Y"),
        arch=host_arch(),
        os_version=host_os_version(runner),
        build_host=socket.gethostname() or platform.node(),
        revision=revision,
    )
    version_file = Path(output_dir) / VERSION_FILE
    version_file.write_text(content)
    log(f"Wrote {version_file}")
    return version_file


def _add_tree(tar: tarfile.TarFile, source_dir: Path) -> None:
    # Members are rooted at "." like `tar -C dir .`
    tar.add(str(source_dir), arcname=".")


def create_archive(source_dir: Path, archive_path: Path, compression: str = "gzip", zstd_level: int = 19) -> Path:
    """
    Archive the contents of source_dir.

    Args:
        source_dir: Directory whose contents are archived
        archive_path: Output file
        compression: "gzip" or "zstd"
        zstd_level: Compression level for zstd

    Returns:
        Path to the archive
    """
    source_dir = Path(source_dir)
    archive_path = Path(archive_path)
    archive_path.parent.mkdir(parents=True, exist_ok=True)

    print(f"Creating {archive_path.name} from {source_dir}...")

    try:
        if compression == "gzip":
            with tarfile.open(archive_path, "w:gz") as tar:
                _add_tree(tar, source_dir)
        elif compression == "zstd":
            try:
                import zstandard as zstd
            except ImportError as e:
                raise ImportError("zstandard module required!\n" "Install with: pip install zstandard") from e

            cctx = zstd.ZstdCompressor(level=zstd_level, threads=-1)
            with (
                open(archive_path, "wb") as ofh,
                cctx.stream_writer(ofh, closefd=False) as compressor,
                tarfile.open(fileobj=compressor, mode="w|") as tar,
            ):
                _add_tree(tar, source_dir)
        else:
            raise BuildError(f"Unsupported compression: {compression}")
    except KeyboardInterrupt:
        print("\n⚠️  Archiving interrupted - cleaning up partial file...")
        archive_path.unlink(missing_ok=True)
        raise

    size_mb = archive_path.stat().st_size / (1024 * 1024)
    print(f"✓ Created {archive_path} ({size_mb:.2f} MB)")
    return archive_path


def get_file_hash(filepath: Path, algorithm: str = "sha256") -> str:
    """Calculate hash of a file."""
    h = hashlib.new(algorithm)
    with open(filepath, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def generate_checksum(archive_path: Path) -> str:
    """Write <archive>.sha256 and return the digest."""
    archive_path = Path(archive_path)
    sha256 = get_file_hash(archive_path, "sha256")
    sha256_file = archive_path.parent / f"{archive_path.name}.sha256"
    sha256_file.write_text(f"{sha256} *{archive_path.name}\n")
    print(f"  SHA256: {sha256}")
    print(f"  Saved to: {sha256_file.name}")
    return sha256


def package_jre(config: BuildConfig, runner: CommandRunner, revision: str | None = None) -> Path:
    """Strip, stamp and archive config.output_dir."""
    print_section("PACKAGING JRE")

    output_dir = Path(config.output_dir)
    if not output_dir.is_dir():
        raise BuildError(f"JRE directory not found: {output_dir}")

    stripped, total = strip_binaries(output_dir, runner)
    if stripped < total:
        warn(f"{total - stripped} executables could not be stripped")

    write_version_file(config, output_dir, runner, revision=revision)

    archive_path = create_archive(
        output_dir,
        config.archive_path(),
        compression=config.compression,
        zstd_level=config.zstd_level,
    )
    generate_checksum(archive_path)

    log(f"JRE packaged as {archive_path.name}")
    return archive_path


def main() -> None:
    """Package an existing JRE directory."""
    parser = argparse.ArgumentParser(description="Strip, stamp and archive a static JRE tree")
    parser.add_argument("jre_dir", type=Path, help="JRE directory to package")
    parser.add_argument("--version", default=None, help="OpenJDK version (default: $OPENJDK_VERSION or 17)")
    parser.add_argument("--archive-dir", type=Path, default=None, help="Directory for the archive (default: cwd)")
    parser.add_argument("--compression", choices=["gzip", "zstd"], default=None, help="Archive compression")
    parser.add_argument("--zstd-level", type=int, default=None, help="Zstd compression level (default: 19)")

    args = parser.parse_args()

    try:
        config = BuildConfig.from_env(
            openjdk_version=args.version,
            output_dir=args.jre_dir,
            archive_dir=args.archive_dir,
            compression=args.compression,
            zstd_level=args.zstd_level,
        )
        archive = package_jre(config, CommandRunner())
    except BuildError as e:
        error(str(e))
        sys.exit(1)

    print(f"\n✅ Done! {archive}")


if __name__ == "__main__":
    main()
