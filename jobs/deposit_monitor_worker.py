"""
Deposit monitor worker entry point.

Runs the deposit ingestion loop on an interval together with the health
check server until SIGINT or SIGTERM.

Usage:
    python -m jobs.deposit_monitor_worker
"""

import asyncio
import signal
import sys
import warnings


# eth_utils warns about unknown ChainIds on import; harmless here
warnings.filterwarnings(
    "ignore",
    message=".*does not have a valid ChainId.*",
    category=UserWarning,
)

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # noqa: E402
from loguru import logger  # noqa: E402

from app.config.settings import settings  # noqa: E402
from app.services.deposit_monitor import DepositMonitor  # noqa: E402
from jobs.health import (  # noqa: E402
    set_monitor,
    set_scheduler,
    start_health_server,
)
from jobs.initialization.logging import setup_logging  # noqa: E402
from jobs.initialization.shutdown import shutdown_handler  # noqa: E402


async def main() -> None:
    """Start the deposit monitor and wait for a stop signal."""
    setup_logging()

    logger.info(
        f"[Worker] Network: {settings.network_name}, "
        f"contract: {settings.deposit_contract_address or 'not configured'}"
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            signal.signal(sig, lambda *_: stop_event.set())

    scheduler = AsyncIOScheduler(timezone="UTC")
    monitor = DepositMonitor(settings, scheduler=scheduler)
    set_scheduler(scheduler)
    set_monitor(monitor)

    health_runner = None
    try:
        health_runner, _ = await start_health_server(
            port=settings.health_check_port
        )
    except OSError as e:
        logger.warning(f"Failed to start health check server: {e}")

    try:
        started = await monitor.start_monitor()
        if not started:
            logger.warning("[Worker] Deposit monitor not started, exiting")
            return

        await stop_event.wait()
        logger.info("[Worker] Stop signal received")
    finally:
        await shutdown_handler(monitor, health_runner)
        if scheduler.running:
            scheduler.shutdown(wait=False)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Worker stopped by user (KeyboardInterrupt)")
    except Exception as e:
        logger.exception(f"Worker crashed: {e}")
        sys.exit(1)
