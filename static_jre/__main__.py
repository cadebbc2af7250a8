"""
Entry point for running the package as a script.

Usage:
    python -m static_jre --version 17
"""

from .pipeline import main

if __name__ == "__main__":
    main()
