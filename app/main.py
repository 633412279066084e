"""Service lifecycle: stop-signal handlers around the window pipeline."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Optional

from services.pipeline import WindowPipeline, build_default_pipeline
from services.shutdown import ShutdownSignal
from settings import Settings

logger = logging.getLogger(__name__)

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def install_signal_handlers(shutdown: ShutdownSignal) -> None:
    loop = asyncio.get_running_loop()
    for signum in _STOP_SIGNALS:
        try:
            loop.add_signal_handler(signum, shutdown.request)
        except NotImplementedError:
            # Event loops without signal support fall back to KeyboardInterrupt.
            logger.debug("Signal handlers unavailable for %s", signum)


async def run_service(
    settings: Settings,
    shutdown: Optional[ShutdownSignal] = None,
    pipeline: Optional[WindowPipeline] = None,
) -> None:
    """Run collection windows until SIGINT/SIGTERM is received."""
    shutdown = shutdown or ShutdownSignal()
    pipeline = pipeline or build_default_pipeline(settings, shutdown)
    install_signal_handlers(shutdown)
    logger.info("Monitoring %d sensor(s): %s", len(settings.tags), ", ".join(settings.tags.values()))
    await pipeline.run_forever()
    logger.info("Program terminated. Exiting gracefully.")
