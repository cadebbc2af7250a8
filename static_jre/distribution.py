#!/usr/bin/env python3
"""
Turn a built JDK image into a runtime-only JRE tree.

The JDK image is copied to a fresh output directory, then the developer
tools, C headers and demo/sample trees are removed.
"""

import argparse
import shutil
import sys
from pathlib import Path

from .config import BuildConfig
from .console import error, log, print_section
from .errors import BuildError

# Developer tools removed from bin/ (shell-style patterns)
DEVELOPER_TOOLS = [
    "javac*",
    "jar*",
    "jarsigner*",
    "javadoc*",
    "javap*",
    "jcmd*",
    "jconsole*",
    "jdb*",
    "jdeps*",
    "jfr*",
    "jhsdb*",
    "jimage*",
    "jinfo*",
    "jlink*",
    "jmap*",
    "jmod*",
    "jps*",
    "jrunscript*",
    "jshell*",
    "jstack*",
    "jstat*",
    "keytool*",
    "rmiregistry*",
    "serialver*",
]

# Directories removed completely
REMOVE_DIRS = ["include", "demo", "sample"]

BUILD_OUTPUT_NAME = "jdk"


def find_build_output(source_dir: Path) -> Path:
    """
    Locate the JDK image produced by `gmake images`.

    Prefers build/<conf>/images/jdk; otherwise takes the first directory
    named "jdk" anywhere under build/.

    Raises:
        BuildError: if no such directory exists
    """
    build_root = Path(source_dir) / "build"
    if build_root.is_dir():
        images = sorted(p for p in build_root.glob(f"*/images/{BUILD_OUTPUT_NAME}") if p.is_dir())
        if images:
            return images[0]
        candidates = sorted(p for p in build_root.rglob(BUILD_OUTPUT_NAME) if p.is_dir())
        if candidates:
            return candidates[0]
    raise BuildError(f"Could not find built JDK directory under {build_root}")


class JreAssembler:
    """Copy a JDK image and prune it down to a JRE."""

    def __init__(self, jdk_dir: Path, output_dir: Path, verbose: bool = False):
        self.jdk_dir = Path(jdk_dir)
        self.output_dir = Path(output_dir)
        self.verbose = verbose

        # Statistics
        self.original_size = 0
        self.final_size = 0
        self.files_removed = 0

    def log(self, message: str) -> None:
        """Print a message if verbose mode is enabled."""
        if self.verbose:
            print(message)

    def get_dir_size(self, path: Path) -> int:
        """Get total size of a directory in bytes."""
        total = 0
        for entry in path.rglob("*"):
            if entry.is_file() and not entry.is_symlink():
                total += entry.stat().st_size
        return total

    def copy_image(self) -> None:
        """Copy the JDK image into a fresh output directory."""
        if self.output_dir.exists():
            self.log(f"Removing previous output: {self.output_dir}")
            shutil.rmtree(self.output_dir)
        self.output_dir.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(self.jdk_dir, self.output_dir, symlinks=True)

    def remove_developer_tools(self) -> None:
        bin_dir = self.output_dir / "bin"
        if not bin_dir.is_dir():
            return
        for pattern in DEVELOPER_TOOLS:
            for tool in sorted(bin_dir.glob(pattern)):
                # jar* also matches jarsigner; it may already be gone
                if not tool.exists() and not tool.is_symlink():
                    continue
                if tool.is_dir() and not tool.is_symlink():
                    shutil.rmtree(tool)
                else:
                    tool.unlink()
                self.files_removed += 1
                self.log(f"Removing tool: {tool.name}")

    def remove_directories(self) -> None:
        for name in REMOVE_DIRS:
            path = self.output_dir / name
            if path.is_dir():
                self.files_removed += sum(1 for p in path.rglob("*") if p.is_file())
                shutil.rmtree(path)
                self.log(f"Removing directory: {name}/")

    def prune(self) -> None:
        """Remove JDK-only content. Safe to repeat on a pruned tree."""
        self.remove_developer_tools()
        self.remove_directories()

    def process(self) -> Path:
        self.original_size = self.get_dir_size(self.jdk_dir)

        print(f"Copying {self.jdk_dir} -> {self.output_dir}")
        self.copy_image()
        self.prune()

        self.final_size = self.get_dir_size(self.output_dir)

        saved = self.original_size - self.final_size
        saved_pct = (saved / self.original_size * 100) if self.original_size > 0 else 0
        print(f"\n{'=' * 60}")
        print("Statistics")
        print(f"{'=' * 60}")
        print(f"JDK size:       {self.original_size / 1024 / 1024:>10.1f} MB")
        print(f"JRE size:       {self.final_size / 1024 / 1024:>10.1f} MB")
        print(f"Saved:          {saved / 1024 / 1024:>10.1f} MB ({saved_pct:.1f}%)")
        print(f"Files removed:  {self.files_removed:>10}")
        print(f"{'=' * 60}\n")

        return self.output_dir


def create_jre_dist(config: BuildConfig, source_dir: Path, verbose: bool = False) -> Path:
    """Find the built JDK image and assemble the JRE into config.output_dir."""
    print_section("CREATING JRE DISTRIBUTION")

    jdk_dir = find_build_output(source_dir)
    log(f"Found built JDK: {jdk_dir}")

    JreAssembler(jdk_dir, config.output_dir, verbose=verbose).process()
    log(f"JRE distribution created in {config.output_dir}")
    return Path(config.output_dir)


def main() -> None:
    """Assemble a JRE from an already built source tree."""
    parser = argparse.ArgumentParser(description="Create a JRE tree from a built OpenJDK source tree")
    parser.add_argument("source_dir", type=Path, help="OpenJDK source directory containing build/")
    parser.add_argument("output_dir", type=Path, help="Directory to write the JRE into (replaced)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Print every removed file")

    args = parser.parse_args()

    try:
        jdk_dir = find_build_output(args.source_dir)
        JreAssembler(jdk_dir, args.output_dir, verbose=args.verbose).process()
    except BuildError as e:
        error(str(e))
        sys.exit(1)

    print("✓ Successfully created JRE distribution")


if __name__ == "__main__":
    main()
