"""Surechigai token relay server.

Two phones that cannot find each other over local transport swap their
ranging handshake tokens through a room on this server.
"""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("surechigai-token-server")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "1.0.0"
