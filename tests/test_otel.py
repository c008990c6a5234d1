from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from opentelemetry.test.test_base import TestBase

import pyzzle

if TYPE_CHECKING:
    from collections.abc import Iterator

    import httpx


@pytest.fixture
def otel_test_base() -> Iterator[TestBase]:
    test_base = TestBase()
    test_base.setUp()
    try:
        yield test_base
    finally:
        test_base.tearDown()


def test_trace(transport: httpx.WSGITransport, otel_test_base: TestBase) -> None:
    tracer = otel_test_base.tracer_provider.get_tracer(__name__)
    with tracer.start_as_current_span("call") as span:
        res = (
            pyzzle.post("http://localhost/echo")
            .transport(transport)
            .trace(span)
            .body(b'{"animal":"bear"}')
        )
    assert res.status == 200

    spans = otel_test_base.memory_exporter.get_finished_spans()
    assert len(spans) == 1
    events = spans[0].events
    assert len(events) == 1
    assert events[0].name == "pyzzle"
    assert events[0].attributes == {
        "request": '{"animal":"bear"}',
        "response": '{"animal":"bear"}',
    }


def test_trace_without_body(
    transport: httpx.WSGITransport, otel_test_base: TestBase
) -> None:
    tracer = otel_test_base.tracer_provider.get_tracer(__name__)
    with tracer.start_as_current_span("call") as span:
        pyzzle.get("http://localhost/missing").transport(transport).trace(span).do()

    (finished,) = otel_test_base.memory_exporter.get_finished_spans()
    (event,) = finished.events
    assert event.attributes == {"request": "", "response": "Not Found"}


def test_trace_not_recorded_on_error(otel_test_base: TestBase) -> None:
    tracer = otel_test_base.tracer_provider.get_tracer(__name__)
    with tracer.start_as_current_span("call") as span, pytest.raises(pyzzle.URLError):
        pyzzle.get("/relative").trace(span).do()

    (finished,) = otel_test_base.memory_exporter.get_finished_spans()
    assert all(event.name != "pyzzle" for event in finished.events)
