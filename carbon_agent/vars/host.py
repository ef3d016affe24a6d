"""
Carbon Agent - Host Metrics

Func vars sampling the local host through psutil. Names follow the agent's
telemetry naming (host.cpu.pct_total, host.load.1m, ...).
"""

from typing import Callable, Dict, List

import psutil
import structlog

from .base import Func

logger = structlog.get_logger(__name__)

MB = 1024 * 1024


def _load(index: int) -> Callable[[], float]:
    return lambda: psutil.getloadavg()[index]


def host_vars() -> Dict[str, Func]:
    """Host metric vars keyed by name, without prefix."""
    return {
        # Non-blocking: percentage since the previous call
        "cpu.pct_total": Func(lambda: psutil.cpu_percent(interval=None)),
        "load.1m": Func(_load(0)),
        "load.5m": Func(_load(1)),
        "load.15m": Func(_load(2)),
        "mem.used_mb": Func(lambda: psutil.virtual_memory().used / MB),
        "mem.available_mb": Func(lambda: psutil.virtual_memory().available / MB),
        "mem.pct": Func(lambda: psutil.virtual_memory().percent),
        "swap.used_mb": Func(lambda: psutil.swap_memory().used / MB),
    }


def register_host_metrics(graphite, prefix: str = "host") -> List[str]:
    """Register all host metric vars with a publisher; returns the names."""
    names = []
    for name, var in host_vars().items():
        full_name = f"{prefix}.{name}" if prefix else name
        graphite.register(full_name, var)
        names.append(full_name)

    logger.info("Host metrics registered", count=len(names), prefix=prefix)
    return names
