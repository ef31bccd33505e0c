"""Demo relay server for the user account API.

Exposes the installed distribution version as `__version__`.
"""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("user-api-demo")
except PackageNotFoundError:  # pragma: no cover - running from a source checkout
    __version__ = "0.0.0"
