"""
Static OpenJDK JRE builder for FreeBSD CI images.

This package provides tools for:
- Repairing the pkg repository configuration and installing build dependencies
- Fetching OpenJDK source for a target version
- Configuring and building OpenJDK with static-link flags
- Pruning the built JDK image to a JRE
- Stripping, stamping and archiving the JRE
- Verifying the packaged java binary

Main modules:
- pipeline: Complete build, from package setup to verification
- pkg_repos: Standalone package repository fix
- distribution: JDK image -> JRE tree
- package: Strip, VERSION file and archive
- verify: Extract and smoke-test an archive
"""

from .pipeline import main as build_static_jre_main

__version__ = "1.0.0"

__all__ = ["build_static_jre_main"]
