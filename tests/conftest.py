"""Pytest configuration and fixtures."""

import asyncio
import random
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import pytest
from opentelemetry.context import Context
from opentelemetry.sdk.trace import ReadableSpan, Span, SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON

# Put the backend package root on the path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))


class RecordingProcessor(SpanProcessor):
    """Records span start/end events in the order they happen."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, str, int]] = []

    def on_start(self, span: Span, parent_context: Optional[Context] = None) -> None:
        self.events.append(("start", span.name, span.context.span_id))

    def on_end(self, span: ReadableSpan) -> None:
        self.events.append(("end", span.name, span.context.span_id))


class FakeConnection:
    """In-memory stand-in for the websocket connection."""

    def __init__(self) -> None:
        self.sent: List[str] = []
        self.closed = False

    async def send(self, text: str) -> None:
        self.sent.append(text)

    async def close(self) -> None:
        self.closed = True


class FakeSleep:
    """Records requested delays and yields to the loop instead of sleeping."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


@pytest.fixture
def exporter():
    return InMemorySpanExporter()


@pytest.fixture
def recorder():
    return RecordingProcessor()


@pytest.fixture
def tracer_provider(exporter, recorder):
    provider = TracerProvider(sampler=ALWAYS_ON)
    provider.add_span_processor(recorder)
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    yield provider
    provider.shutdown()


@pytest.fixture
def spans(tracer_provider):
    from drone.telemetry.spans import SpanManager

    return SpanManager(tracer_provider, name="drone-test")


@pytest.fixture
def codec():
    from drone.telemetry.propagation import TraceContextCodec

    return TraceContextCodec()


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def reaction(fake_sleep):
    from drone.agents.reaction import ReactionSimulator

    return ReactionSimulator(1000, rng=random.Random(42), sleep=fake_sleep)


@pytest.fixture
def connection():
    return FakeConnection()


@pytest.fixture
def shutdown_calls():
    return []


@pytest.fixture
def agent(spans, codec, reaction, shutdown_calls):
    from drone.agents.drone_agent import DroneAgent

    return DroneAgent(
        spans,
        codec,
        reaction,
        lat="48.133333",
        lon="11.566667",
        id_factory=lambda: "abc-123",
        on_shutdown=lambda: shutdown_calls.append(True),
    )

