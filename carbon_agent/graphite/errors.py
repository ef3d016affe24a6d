"""
Carbon Agent - Graphite Errors

Error taxonomy for the Graphite publisher.
"""


class GraphiteError(Exception):
    """Base class for publisher errors."""


class GraphiteConnectionError(GraphiteError, ConnectionError):
    """Dial, reconnect or write failure on the carbon connection."""


class ShortWriteError(GraphiteError):
    """The socket accepted fewer bytes than the formatted line holds."""

    def __init__(self, name: str, value: str, written: int, expected: int):
        self.name = name
        self.value = value
        self.written = written
        self.expected = expected
        super().__init__(f"{name} = {value}: short write: {written}/{expected}")
