"""Calc3D service entry point.

Loads configuration, sets up logging and serves the local JSON API until
interrupted.
"""

from __future__ import annotations

import asyncio
import logging

from aiohttp import web

from .config import load_config
from .logging_config import setup_logging
from .server import create_app

logger = logging.getLogger(__name__)


async def run() -> None:
    config = load_config()
    setup_logging(config.log_level)

    logger.info("Calc3D starting up")
    logger.info("Data directory: %s", config.data_dir)
    logger.info("Project history limit: %d", config.project_history_limit)

    app = create_app(config)
    runner = web.AppRunner(app)
    await runner.setup()
    try:
        site = web.TCPSite(runner, config.host, config.port)
        await site.start()
        logger.info("API listening on http://%s:%d", config.host, config.port)

        # Keep running
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        logger.info("Shutting down (cancelled)")
    finally:
        await runner.cleanup()
        logger.info("Calc3D stopped")


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
