# SPDX-License-Identifier: MIT
"""elective-sync - Local cache and realtime sync for a university elective portal."""

from importlib.metadata import PackageNotFoundError, version


__all__: list[str] = ["__version__"]

# Get version from installed package metadata
__version__: str
try:
    __version__ = version("elective-sync")
except PackageNotFoundError:
    # Package is not installed, use development fallback
    __version__ = "development"
