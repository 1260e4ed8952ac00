"""
SiteDB - bootstrap check entry point.

Opens the user store for the configured tenant, runs the full bootstrap
chain (local cache, remote snapshot, fresh database), migrates and seeds the
schema, commits the image to the local cache and logs the resulting status.

Usage:
    python -m sitedb.main

Configuration is entirely via environment variables.
See config.py for all available settings.
"""

from __future__ import annotations

import asyncio
import logging
import sys

import json_log_formatter

from .config import ObservabilityConfig, SiteDbConfig
from .store import SiteUserStore

logger = logging.getLogger(__name__)


def setup_logging(config: ObservabilityConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Observability configuration
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    if config.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def run(config: SiteDbConfig) -> int:
    """Open the store, log its status and close it.

    Returns:
        Process exit code
    """
    config.log_config()

    async with SiteUserStore(config) as store:
        status = await store.status()

    logger.info("User store status", extra=status.to_dict())
    return 0 if status.loaded else 1


def main() -> None:
    """Main entry point."""
    try:
        config = SiteDbConfig.from_env()
    except ValueError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    setup_logging(config.observability)
    sys.exit(asyncio.run(run(config)))


if __name__ == "__main__":
    main()
