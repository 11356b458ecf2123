"""Drone Agent

Responsibility:
Registers the drone with the coordinating server and reacts to the commands
it sends, opening a span per reaction that continues the sender's trace.
"""

import asyncio
import json
import logging
import uuid
from enum import Enum
from typing import Any, Callable, Dict, Optional

from opentelemetry.trace import SpanKind

from ..core.exceptions import AgentStateError, MalformedMessageError
from ..schemas.messages import RegistrationMessage, parse_command
from ..telemetry.metrics import (
    drone_messages_total,
    drone_reaction_wait_seconds,
    drone_registrations_total,
)
from ..telemetry.propagation import TraceContextCodec
from ..telemetry.spans import SpanManager
from ..transport.websocket import Connection
from .reaction import ReactionSimulator

logger = logging.getLogger(__name__)

REGISTER_SPAN = "create-drone"
REACTION_SPAN = "move-to-location"


class AgentState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    REGISTERING = "registering"
    ACTIVE = "active"
    CLOSING = "closing"
    TERMINATED = "terminated"


class DroneAgent:
    """
    Protocol handler for one drone connection.

    on_open registers once, on_message handles commands one at a time and
    on_close stops handling and asks the owner to shut down.
    """

    def __init__(
        self,
        spans: SpanManager,
        codec: Optional[TraceContextCodec] = None,
        reaction: Optional[ReactionSimulator] = None,
        *,
        lat: str,
        lon: str,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        on_shutdown: Optional[Callable[[], Any]] = None,
    ) -> None:
        self._spans = spans
        self._codec = codec or TraceContextCodec()
        self._reaction = reaction or ReactionSimulator()
        self._lat = lat
        self._lon = lon
        self._id_factory = id_factory
        self._on_shutdown = on_shutdown

        self.state = AgentState.DISCONNECTED
        self.drone_id: Optional[str] = None

        # Serializes message handling and lets close wait for in-flight work
        self._lock = asyncio.Lock()
        self._close_started = False
        self._shutdown_issued = False
        self.interrupted = False

    @property
    def terminated(self) -> bool:
        return self.state is AgentState.TERMINATED

    def mark_connecting(self) -> None:
        if self.state is not AgentState.DISCONNECTED:
            raise AgentStateError(f"cannot connect while {self.state.value}")
        self.state = AgentState.CONNECTING

    # -------------------------
    # Registration
    # -------------------------
    async def on_open(self, connection: Connection) -> None:
        if self.state not in (AgentState.DISCONNECTED, AgentState.CONNECTING):
            raise AgentStateError(f"cannot register while {self.state.value}")

        self.state = AgentState.REGISTERING
        self.drone_id = self._id_factory()
        logger.info("Hello, I'm the drone %s", self.drone_id)

        with self._spans.start_span(REGISTER_SPAN, None, kind=SpanKind.CLIENT) as span:
            self._spans.set_tag(span, "id", self.drone_id)
            self._spans.set_tag(span, "span.kind", "client")

            message = RegistrationMessage(id=self.drone_id, lat=self._lat, lon=self._lon)
            payload = message.to_payload(self._codec.inject(self._spans.context_of(span)))
            await connection.send(json.dumps(payload))

        drone_registrations_total.inc()
        self.state = AgentState.ACTIVE
        logger.info("Connected to the server")

    # -------------------------
    # Commands
    # -------------------------
    async def on_message(self, raw: str) -> bool:
        """Handle one inbound frame. Returns True when a reaction ran."""
        if self.state is not AgentState.ACTIVE:
            return self._drop_inactive()

        async with self._lock:
            # State may have changed while queued behind another message
            if self.state is not AgentState.ACTIVE:
                return self._drop_inactive()

            logger.info("Got message: %s", raw)
            try:
                command = parse_command(raw)
            except MalformedMessageError as e:
                logger.warning("Dropping malformed message: %s", e)
                drone_messages_total.labels(outcome="malformed").inc()
                return False

            try:
                await self._react(command)
            except Exception:
                logger.exception("Failed to handle message")
                drone_messages_total.labels(outcome="failed").inc()
                return False

            drone_messages_total.labels(outcome="handled").inc()
            return True

    def _drop_inactive(self) -> bool:
        logger.warning("Dropping message received while %s", self.state.value)
        drone_messages_total.labels(outcome="dropped").inc()
        return False

    async def _react(self, command: Dict[str, str]) -> None:
        parent = self._codec.extract(command)
        if parent is None:
            logger.debug("No trace context in message, starting a new trace")

        with self._spans.start_span(REACTION_SPAN, parent) as span:
            logger.info("On my way!")
            wait_ms = self._reaction.draw()
            self._spans.set_tag(span, "wait", wait_ms)
            drone_reaction_wait_seconds.observe(wait_ms / 1000)
            try:
                await self._reaction.wait(wait_ms)
            except asyncio.CancelledError:
                # Asked to stop: finish this span, start no further reaction
                logger.info("Interrupted %d ms reaction, no longer accepting commands", wait_ms)
                self.interrupted = True
                self.state = AgentState.CLOSING

    # -------------------------
    # Shutdown
    # -------------------------
    async def on_close(self) -> None:
        if self._close_started or self.state is AgentState.TERMINATED:
            return
        self._close_started = True

        logger.info("Socket has been closed. I have no reasons to keep running.")
        self.state = AgentState.CLOSING

        # Let an in-flight reaction finish before terminating
        async with self._lock:
            self.state = AgentState.TERMINATED

        self._issue_shutdown()

    def _issue_shutdown(self) -> None:
        if self._shutdown_issued:
            return
        self._shutdown_issued = True
        if self._on_shutdown is not None:
            self._on_shutdown()
