"""Personal ride journal with an offline-tolerant record store.

Records bike rides and their photos against a small REST backend, falls
back to a local on-disk cache when the backend is unreachable, and groups
rides sharing a location for map display.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ridelog")
except PackageNotFoundError:
    # Running from a source tree without installing
    __version__ = "0.0.0.dev0+unknown"

__author__ = "ridelog contributors"
__license__ = "Apache-2.0"

__all__ = ["__version__"]
