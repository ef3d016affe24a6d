"""
Carbon Agent - Vars Package

Values that can be registered with the Graphite publisher:
- Int, Float, String: settable values, safe to update from any thread
- Func: value computed by a callable at publish time
- register_host_metrics: psutil-backed host metrics
"""

from .base import Float, Func, Int, String, Var, render_value
from .host import host_vars, register_host_metrics

__all__ = [
    "Var",
    "Int",
    "Float",
    "String",
    "Func",
    "render_value",
    "host_vars",
    "register_host_metrics",
]
