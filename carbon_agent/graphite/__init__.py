"""
Carbon Agent - Graphite Package

Pushes registered vars to a Graphite carbon endpoint over the plaintext
line protocol.
"""

from .connection import CarbonConnection, parse_endpoint
from .errors import GraphiteConnectionError, GraphiteError, ShortWriteError
from .publisher import Graphite

__all__ = [
    "Graphite",
    "CarbonConnection",
    "parse_endpoint",
    "GraphiteError",
    "GraphiteConnectionError",
    "ShortWriteError",
]
