"""
Status-line output shared by all build steps.

Green timestamped progress lines, yellow warnings, red errors and the
section banners used to separate pipeline stages.
"""

import os
import sys
from datetime import datetime

RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
NC = "\033[0m"


def _use_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty()


def _paint(color: str, text: str) -> str:
    if _use_color():
        return f"{color}{text}{NC}"
    return text


def timestamp() -> str:
    """Return the current local time as YYYY-mm-dd HH:MM:SS."""
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def log(message: str) -> None:
    print(_paint(GREEN, f"[{timestamp()}] {message}"), flush=True)


def warn(message: str) -> None:
    print(_paint(YELLOW, f"[WARNING] {message}"), flush=True)


def error(message: str) -> None:
    """Print an error line. Raising is left to the caller."""
    print(_paint(RED, f"[ERROR] {message}"), file=sys.stderr, flush=True)


def print_section(title: str) -> None:
    """Print a formatted section header."""
    print("\n" + "=" * 70)
    print(title)
    print("=" * 70, flush=True)


def list_directory(path: os.PathLike | str) -> None:
    """Print a listing of a directory, used for post-mortem diagnosis."""
    print(f"\nContents of {path}:")
    try:
        entries = sorted(os.scandir(path), key=lambda e: e.name)
    except OSError as e:
        print(f"  (cannot list: {e})")
        return
    for entry in entries:
        try:
            size = entry.stat(follow_symlinks=False).st_size
        except OSError:
            size = 0
        suffix = "/" if entry.is_dir(follow_symlinks=False) else ""
        print(f"  {size:>12}  {entry.name}{suffix}")
