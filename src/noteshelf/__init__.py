"""
Noteshelf - a minimal note-management service.
This package implements a small note store with owner and tag queries behind a
pluggable persistence contract, exposed to clients as an MCP server.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("noteshelf")
except PackageNotFoundError:
    __version__ = "0.1.0"
