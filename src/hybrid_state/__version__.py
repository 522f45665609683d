"""
Version of the installed 'hybrid-state' distribution.

Falls back to ``0.0.0`` when the package is imported from a source tree
that was never installed.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__: str = version("hybrid-state")
except PackageNotFoundError:
    __version__ = "0.0.0"
