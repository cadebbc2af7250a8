"""
Fetch the OpenJDK source tree for the configured version.
"""

from pathlib import Path

from .config import BuildConfig
from .console import log, print_section
from .runner import CommandRunner


def download_source(config: BuildConfig, runner: CommandRunner) -> Path:
    """
    Shallow-clone the upstream repository into the build directory.

    An existing checkout is reused as-is, so reruns do not hit the network.

    Returns:
        Path to the source tree
    """
    print_section(f"DOWNLOADING OPENJDK {config.openjdk_version} SOURCE")

    repo = config.source_repository
    build_dir = Path(config.build_dir)
    build_dir.mkdir(parents=True, exist_ok=True)
    source_dir = build_dir / repo.name

    if source_dir.is_dir():
        log(f"Source already present at {source_dir}, skipping clone")
    else:
        log(f"Cloning {repo.url}...")
        runner.run(["git", "clone", "--depth", "1", repo.url, repo.name], cwd=build_dir)

    log(f"Source downloaded successfully to {source_dir}")
    return source_dir


def source_revision(source_dir: Path, runner: CommandRunner) -> str:
    """Short commit hash of the checkout, or "unknown"."""
    revision = runner.output(["git", "rev-parse", "--short=12", "HEAD"], cwd=source_dir)
    return revision or "unknown"
