"""
Carbon Agent - Published Values

A Var is anything that can render its current value as text. The publisher
calls render() from its own task, so implementations must tolerate being
read at any time while the owning application updates them.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Callable


def render_value(value: Any) -> str:
    """Text form of a sampled value as it goes on the wire."""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float):
        return repr(value)
    return str(value)


class Var(ABC):
    """Base class for published values."""

    @abstractmethod
    def render(self) -> str:
        """Current value as text."""
        pass

    def __str__(self) -> str:
        return self.render()


class Int(Var):
    """Integer counter or gauge."""

    def __init__(self, value: int = 0):
        self._value = value
        self._lock = threading.Lock()

    def add(self, delta: int = 1) -> int:
        with self._lock:
            self._value += delta
            return self._value

    def set(self, value: int) -> None:
        with self._lock:
            self._value = value

    def value(self) -> int:
        with self._lock:
            return self._value

    def render(self) -> str:
        return str(self.value())


class Float(Var):
    """Floating point gauge."""

    def __init__(self, value: float = 0.0):
        self._value = float(value)
        self._lock = threading.Lock()

    def add(self, delta: float) -> float:
        with self._lock:
            self._value += delta
            return self._value

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    def value(self) -> float:
        with self._lock:
            return self._value

    def render(self) -> str:
        return render_value(self.value())


class String(Var):
    """Text value, published verbatim."""

    def __init__(self, value: str = ""):
        self._value = value
        self._lock = threading.Lock()

    def set(self, value: str) -> None:
        with self._lock:
            self._value = value

    def value(self) -> str:
        with self._lock:
            return self._value

    def render(self) -> str:
        return self.value()


class Func(Var):
    """Value computed on demand by a zero-argument callable."""

    def __init__(self, fn: Callable[[], Any]):
        self._fn = fn

    def value(self) -> Any:
        return self._fn()

    def render(self) -> str:
        return render_value(self._fn())
