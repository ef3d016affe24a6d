#!/usr/bin/env python3
"""
Carbon Agent - Daemon

Runs the Graphite publisher as a long-lived service:
- Loads YAML configuration
- Connects to the carbon endpoint (fails fast if unreachable)
- Registers host metrics (CPU, load, memory, swap)
- Shuts down cleanly on SIGTERM/SIGINT

Usage:
    carbon-agent [--config CONFIG_PATH]
"""

import argparse
import asyncio
import copy
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

import structlog
import yaml

from .graphite import Graphite, GraphiteConnectionError
from .vars import register_host_metrics

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG = {
    "agent": {"name": "carbon-agent", "version": "1.0.0"},
    "graphite": {"endpoint": "localhost:2003", "interval": 10, "timeout": 1, "queue_size": 1024},
    "host_metrics": {"enabled": True, "prefix": "host"},
    "logging": {"level": "INFO"},
}


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging."""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level.upper())
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_config(config_path: str) -> dict:
    """Load configuration from YAML, filling missing keys from defaults."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    path = Path(config_path)
    if not path.exists():
        logger.warning("Config file not found, using defaults", path=config_path)
        return config

    with open(path, "r") as f:
        loaded = yaml.safe_load(f) or {}

    for section, values in loaded.items():
        if isinstance(values, dict) and isinstance(config.get(section), dict):
            config[section].update(values)
        else:
            config[section] = values

    logger.info("Configuration loaded", path=config_path)
    return config


class CarbonAgent:
    """Main Carbon Agent application."""

    def __init__(self, config: dict):
        self.config = config
        self.graphite: Optional[Graphite] = None
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """Connect the publisher and run until stopped."""
        graphite_config = self.config["graphite"]
        logger.info(
            "Starting Carbon Agent",
            version=self.config["agent"]["version"],
            endpoint=graphite_config["endpoint"],
        )

        self.graphite = await Graphite.connect(
            graphite_config["endpoint"],
            interval=float(graphite_config["interval"]),
            timeout=float(graphite_config["timeout"]),
            queue_size=int(graphite_config.get("queue_size", 1024)),
        )

        try:
            host_config = self.config["host_metrics"]
            if host_config.get("enabled"):
                register_host_metrics(self.graphite, prefix=host_config.get("prefix", "host"))

            logger.info("Carbon Agent started successfully")

            await self._shutdown_event.wait()
        finally:
            # A stop() that arrived while connecting found no publisher to shut down
            await self.graphite.shutdown()

    async def stop(self) -> None:
        """Stop the agent gracefully."""
        logger.info("Stopping Carbon Agent")

        if self.graphite:
            await self.graphite.shutdown()

        self._shutdown_event.set()
        logger.info("Carbon Agent stopped")

    def handle_signal(self, signum: int) -> None:
        """Handle shutdown signals."""
        logger.info("Received signal", signal=signum)
        asyncio.create_task(self.stop())


async def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Carbon metrics agent")
    parser.add_argument(
        "--config", "-c",
        default="config.yaml",
        help="Path to configuration file"
    )
    args = parser.parse_args(argv)

    config = load_config(args.config)
    configure_logging(config["logging"].get("level", "INFO"))

    agent = CarbonAgent(config)

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(signum, agent.handle_signal, signum)

    try:
        await agent.start()
    except GraphiteConnectionError as e:
        logger.error("Carbon endpoint unreachable", error=str(e))
        return 1
    except Exception as e:
        logger.exception("Agent failed", error=str(e))
        return 1
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
