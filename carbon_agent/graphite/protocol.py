"""
Carbon Agent - Plaintext Protocol

Formats metric lines for the carbon plaintext protocol:

    <metric-name> <value> <unix-seconds>\\n
"""

import time
from typing import Optional


def format_line(name: str, value: str, timestamp: Optional[int] = None) -> bytes:
    """Encode one metric line, stamped with the current time by default."""
    if timestamp is None:
        timestamp = int(time.time())
    return f"{name} {value} {timestamp}\n".encode("utf-8")
