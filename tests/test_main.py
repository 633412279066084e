from __future__ import annotations

import asyncio
import signal

from app.main import install_signal_handlers, run_service
from services.shutdown import ShutdownSignal
from settings import Settings


class StubPipeline:
    def __init__(self) -> None:
        self.ran = False

    async def run_forever(self) -> None:
        self.ran = True


def test_run_service_installs_stop_handlers_and_runs_pipeline() -> None:
    settings = Settings(tags={"AA:BB:CC:DD:EE:01": "Sauna"}, database_url="postgresql://db/ruuvi")
    shutdown = ShutdownSignal()
    pipeline = StubPipeline()

    async def scenario() -> None:
        await run_service(settings, shutdown=shutdown, pipeline=pipeline)
        loop = asyncio.get_running_loop()
        loop.remove_signal_handler(signal.SIGINT)
        loop.remove_signal_handler(signal.SIGTERM)

    asyncio.run(scenario())

    assert pipeline.ran is True


def test_signal_handler_requests_shutdown() -> None:
    shutdown = ShutdownSignal()

    async def scenario() -> None:
        install_signal_handlers(shutdown)
        loop = asyncio.get_running_loop()
        try:
            signal.raise_signal(signal.SIGTERM)
            await asyncio.sleep(0.05)
        finally:
            loop.remove_signal_handler(signal.SIGINT)
            loop.remove_signal_handler(signal.SIGTERM)

    asyncio.run(scenario())

    assert shutdown.requested is True
