"""
Worker Initialization - Shutdown Module.

Module: shutdown.py
Handles graceful shutdown of the worker.
Stops the monitor, the health server and closes database connections.
"""

from aiohttp import web
from loguru import logger

from app.services.deposit_monitor import DepositMonitor
from jobs.health import stop_health_server


async def shutdown_handler(
    monitor: DepositMonitor | None,
    health_runner: web.AppRunner | None = None,
) -> None:
    """Handle graceful shutdown."""
    logger.info("Graceful shutdown initiated...")

    # Stop monitor (removes the job and shuts its scheduler down)
    if monitor is not None:
        try:
            await monitor.stop_monitor()
        except Exception as e:
            logger.warning(f"Error stopping deposit monitor: {e}")

    if health_runner is not None:
        await stop_health_server(health_runner)

    # Close database connections
    try:
        from app.config.database import engine
        await engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.warning(f"Error closing database: {e}")

    logger.info("Graceful shutdown complete")
