import asyncio
import logging
import signal
import sys
from typing import Callable, Optional

import aiohttp
from opentelemetry.sdk.trace import TracerProvider
from prometheus_client import start_http_server

from .core.config import Settings, settings as default_settings
from .core.exceptions import ConnectionFailedError
from .core.logging import setup_logging
from .telemetry.otel import setup_otel
from .telemetry.propagation import TraceContextCodec
from .telemetry.spans import SpanManager
from .agents.drone_agent import AgentState, DroneAgent
from .agents.reaction import ReactionSimulator
from .transport.websocket import WebSocketConnection, connect

logger = logging.getLogger("drone.main")


class AgentProcess:
    """
    Owns the single server connection and the tracer provider for the
    lifetime of the drone. No reconnects: one attempt, then run until the
    server closes the socket.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        tracer_provider: Optional[TracerProvider] = None,
        reaction: Optional[ReactionSimulator] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self.settings = settings or default_settings

        self._owns_provider = tracer_provider is None
        self.tracer_provider = tracer_provider or setup_otel(self.settings)

        agent_kwargs = {"id_factory": id_factory} if id_factory else {}
        self.agent = DroneAgent(
            SpanManager(self.tracer_provider, name=self.settings.otel_service_name),
            TraceContextCodec(),
            reaction or ReactionSimulator(self.settings.max_wait_ms),
            lat=self.settings.latitude,
            lon=self.settings.longitude,
            on_shutdown=self._on_shutdown,
            **agent_kwargs,
        )

        self._connection: Optional[WebSocketConnection] = None
        self._run_task: Optional[asyncio.Task] = None
        self._close_task: Optional[asyncio.Future] = None
        self.shutdown_count = 0

    def _on_shutdown(self) -> None:
        self.shutdown_count += 1
        logger.info("Drone %s shutting down", self.agent.drone_id)

    def stop(self) -> None:
        """
        Close the socket so the reader loop takes the normal close path, or
        cancel the run outright while the handshake is still in progress.
        """
        if self._connection is None:
            if self._run_task is not None and not self._run_task.done():
                logger.info("Stop requested while connecting")
                self._run_task.cancel()
            return

        if self._close_task is None and not self._connection.closed:
            self._close_task = asyncio.ensure_future(self._connection.close())
            self._close_task.add_done_callback(_log_close_failure)

    async def run(self) -> None:
        url = self.settings.server_url
        self._run_task = asyncio.current_task()
        self.agent.mark_connecting()

        try:
            async with aiohttp.ClientSession() as session:
                try:
                    connection = await connect(session, url)
                except ConnectionFailedError:
                    logger.critical("Could not connect to %s, giving up", url)
                    raise

                self._connection = connection
                try:
                    await self.agent.on_open(connection)
                    async for frame in connection.frames():
                        await self.agent.on_message(frame)
                        if self.agent.state is not AgentState.ACTIVE:
                            break
                finally:
                    await self.agent.on_close()
                    await connection.close()
                    if self._close_task is not None:
                        await asyncio.wait([self._close_task])
        finally:
            self._run_task = None
            if self._owns_provider:
                self.tracer_provider.shutdown()

        # The cancellation was absorbed by the reaction; hand it back to the caller
        if self.agent.interrupted:
            raise asyncio.CancelledError()


def _log_close_failure(task: asyncio.Future) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.warning("Closing the socket failed: %s", task.exception())


async def serve(process: AgentProcess) -> None:
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, process.stop)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            continue
        installed.append(sig)

    try:
        await process.run()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def main() -> int:
    setup_logging()

    process = AgentProcess()

    if process.settings.metrics_port:
        start_http_server(process.settings.metrics_port)
        logger.info("Metrics exposed on port %d", process.settings.metrics_port)

    try:
        asyncio.run(serve(process))
    except ConnectionFailedError:
        return 1
    except asyncio.CancelledError:
        logger.info("Stopped")

    return 0


if __name__ == "__main__":
    sys.exit(main())
