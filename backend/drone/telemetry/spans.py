from contextlib import contextmanager
from typing import Iterator, Optional, Union

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import Span, SpanKind, TracerProvider
from opentelemetry.util.types import Attributes, AttributeValue

Parent = Union[Context, Span, None]


class SpanManager:
    """
    Start / tag / close semantics for drone spans.

    Parents are always passed explicitly: a wire-recovered ``Context``, a
    live ``Span``, or None for a new trace. The ambient current span is
    never consulted when choosing a parent.
    """

    def __init__(self, tracer_provider: TracerProvider, name: str = "drone") -> None:
        self._tracer = tracer_provider.get_tracer(name)

    @staticmethod
    def _parent_context(parent: Parent) -> Context:
        if parent is None:
            return Context()
        if isinstance(parent, Span):
            return trace.set_span_in_context(parent, Context())
        return parent

    @contextmanager
    def start_span(
        self,
        name: str,
        parent: Parent = None,
        *,
        kind: SpanKind = SpanKind.INTERNAL,
        attributes: Attributes = None,
    ) -> Iterator[Span]:
        span = self._tracer.start_span(
            name,
            context=self._parent_context(parent),
            kind=kind,
            attributes=attributes,
        )
        # Active for the block so log records carry its ids; ended on every exit
        with trace.use_span(span, end_on_exit=True):
            yield span

    @staticmethod
    def set_tag(span: Span, key: str, value: AttributeValue) -> None:
        span.set_attribute(key, value)

    @staticmethod
    def context_of(span: Span) -> Context:
        return trace.set_span_in_context(span, Context())
