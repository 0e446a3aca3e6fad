"""
Meetcap — deterministic local simulation of the Meetcap token sale contracts.

This package exposes only lightweight metadata at import time. The chain,
contracts, deploy and CLI layers are imported explicitly from their
subpackages.
"""

from .version import __version__

__all__ = ["__version__"]
