"""Tests for SpanManager."""

import pytest
from opentelemetry import trace
from opentelemetry.trace import SpanKind


class TestStartSpan:
    """Tests for span creation and parenting."""

    def test_root_span_ignores_ambient_span(self, spans, exporter):
        """parent=None starts a new trace even inside another span."""
        with spans.start_span("outer") as outer:
            with spans.start_span("inner") as inner:
                assert inner.get_span_context().trace_id != outer.get_span_context().trace_id

        inner_span = exporter.get_finished_spans()[0]
        assert inner_span.name == "inner"
        assert inner_span.parent is None

    def test_span_parent(self, spans, exporter):
        """A live span can be passed as parent."""
        with spans.start_span("parent") as parent:
            pass
        with spans.start_span("child", parent):
            pass

        parent_span, child_span = exporter.get_finished_spans()
        assert child_span.parent.span_id == parent_span.context.span_id
        assert child_span.context.trace_id == parent_span.context.trace_id

    def test_context_parent(self, spans, exporter):
        """An explicit context can be passed as parent."""
        with spans.start_span("parent") as parent:
            ctx = spans.context_of(parent)
        with spans.start_span("child", ctx):
            pass

        parent_span, child_span = exporter.get_finished_spans()
        assert child_span.parent.span_id == parent_span.context.span_id

    def test_kind_and_attributes(self, spans, exporter):
        """Kind and initial attributes are applied."""
        with spans.start_span("op", kind=SpanKind.CLIENT, attributes={"id": "abc"}):
            pass

        (span,) = exporter.get_finished_spans()
        assert span.kind is SpanKind.CLIENT
        assert span.attributes["id"] == "abc"

    def test_span_is_active_inside_block(self, spans):
        """The span is current for the duration of the block only."""
        with spans.start_span("op") as span:
            assert trace.get_current_span() is span
        assert trace.get_current_span() is not span


class TestCloseSpan:
    """Tests for span closure."""

    def test_span_ends_once(self, spans, recorder):
        """Every start has exactly one matching end."""
        with spans.start_span("op"):
            pass

        assert [e[0] for e in recorder.events] == ["start", "end"]

    def test_span_ends_on_exception(self, spans, exporter, recorder):
        """Exceptions propagate and the span still ends."""
        with pytest.raises(RuntimeError):
            with spans.start_span("op"):
                raise RuntimeError("boom")

        (span,) = exporter.get_finished_spans()
        assert span.end_time is not None
        assert [e[0] for e in recorder.events] == ["start", "end"]


class TestSetTag:
    """Tests for SpanManager.set_tag."""

    def test_last_write_wins(self, spans, exporter):
        """Setting a key twice keeps the last value."""
        with spans.start_span("op") as span:
            spans.set_tag(span, "wait", 1)
            spans.set_tag(span, "wait", 2)

        (finished,) = exporter.get_finished_spans()
        assert finished.attributes["wait"] == 2
