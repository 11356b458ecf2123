"""Trace context codec.

Serializes an OpenTelemetry context into the flat string mapping that rides
inside a message payload, and recovers a parent context from a received one.
Uses the W3C Trace Context (``traceparent``, ``tracestate``) and W3C Baggage
(``baggage``) formats.
"""

import logging
from typing import Dict, Mapping, Optional, Set

from opentelemetry import baggage, trace
from opentelemetry.context import Context
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

logger = logging.getLogger(__name__)


def default_propagator() -> TextMapPropagator:
    return CompositePropagator(
        [TraceContextTextMapPropagator(), W3CBaggagePropagator()]
    )


class TraceContextCodec:
    def __init__(self, propagator: Optional[TextMapPropagator] = None) -> None:
        self._propagator = propagator or default_propagator()

    @property
    def fields(self) -> Set[str]:
        return set(self._propagator.fields)

    def inject(self, context: Context) -> Dict[str, str]:
        """Return the propagation keys for ``context`` as a new mapping.

        The result is meant to be merged into an outgoing payload; the keys
        never overlap the drone's domain fields.
        """
        carrier: Dict[str, str] = {}
        self._propagator.inject(carrier, context=context)
        return carrier

    def extract(self, carrier: Mapping[str, str]) -> Optional[Context]:
        """Recover a parent context from a received mapping.

        Returns None when the mapping carries no usable propagation keys,
        which is the normal case for an untraced sender.
        """
        present = self.fields.intersection(carrier)
        if not present:
            return None

        context = self._propagator.extract(carrier, context=Context())

        span_context = trace.get_current_span(context).get_span_context()
        if span_context.is_valid or baggage.get_all(context):
            return context

        logger.debug("Ignoring unusable propagation keys: %s", sorted(present))
        return None
