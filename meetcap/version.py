"""
meetcap.version — semantic version string.

Usage:
    from meetcap.version import __version__, version_metadata
"""

from __future__ import annotations

import platform
from typing import Dict

# Bump this when making a tagged release. Use semver (major.minor.patch).
__version__ = "0.1.0"


def version_metadata() -> Dict[str, str]:
    """Small dict for `meetcap --json version` output."""
    return {
        "name": "meetcap",
        "version": __version__,
        "python": platform.python_version(),
    }


__all__ = ["__version__", "version_metadata"]
