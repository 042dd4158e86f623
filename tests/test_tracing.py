import asyncio
import platform
import re
import socket

from cloudquery.tracing import (
    Span,
    StatusCode,
    Tracer,
    map_to_attributes,
    mac_host,
    os_info,
    start_span,
    tracer_from_context,
    use_tracer,
)


def test_default_tracer_does_not_record():
    tracer = tracer_from_context()
    span = tracer.start("x")
    span.set_status(StatusCode.ERROR, "boom")
    assert tracer.spans == []
    assert span.status_code is StatusCode.UNSET


def test_use_tracer_sets_and_restores():
    tracer = Tracer("t")
    with use_tracer(tracer):
        assert tracer_from_context() is tracer
    assert tracer_from_context() is not tracer
    assert tracer_from_context().recording is False


def test_start_span_records_error():
    tracer = Tracer("t")
    with use_tracer(tracer):
        span, close = start_span("cli:fetch", {"command": "cli:fetch"})
        err = ValueError("bad input")
        assert close(err) is True
    assert tracer.spans == [span]
    assert span.ended
    assert span.attributes == {"command": "cli:fetch"}
    assert span.status_code is StatusCode.ERROR
    assert span.status_description == "bad input"
    assert span.errors == [err]


def test_start_span_without_error():
    tracer = Tracer("t")
    with use_tracer(tracer):
        span, close = start_span("op")
        assert close() is False
    assert span.ended
    assert span.errors == []
    assert span.status_code is StatusCode.UNSET


def test_classified_error_not_recorded():
    tracer = Tracer("t")
    with use_tracer(tracer):
        span, close = start_span("op")
        assert close(asyncio.CancelledError()) is False
    assert span.errors == []
    assert span.status_code is StatusCode.ERROR
    assert span.status_description == "cancelled"


def test_ended_span_ignores_updates():
    span = Span("s")
    span.end()
    first_end = span.end_time
    span.record_error(ValueError("late"))
    span.end()
    assert span.errors == []
    assert span.end_time == first_end


def test_map_to_attributes_round_trip():
    mapping = {"resources": 12, "errors": 3}
    attrs = map_to_attributes(mapping)
    assert dict(attrs) == mapping
    assert len(attrs) == len(mapping)


def test_os_info_masks_hostname(monkeypatch):
    monkeypatch.setattr(
        platform, "uname", lambda: platform.uname_result("Linux", "box1", "6.1", "#1", "x86_64")
    )
    monkeypatch.setattr(socket, "gethostname", lambda: "box1")
    attrs = dict(os_info())
    assert attrs["os.type"] == "linux"
    description = attrs["os.description"]
    assert description.split()[1] == "host"
    assert "box1" not in description


def test_os_info_skips_mismatched_description(monkeypatch):
    monkeypatch.setattr(
        platform, "uname", lambda: platform.uname_result("Linux", "box1", "6.1", "#1", "x86_64")
    )
    monkeypatch.setattr(socket, "gethostname", lambda: "other")
    attrs = dict(os_info())
    assert "os.description" not in attrs
    assert attrs["os.type"] == "linux"


def test_os_info_without_hostname(monkeypatch):
    monkeypatch.setattr(socket, "gethostname", lambda: "")
    assert os_info() == []


def test_mac_host_is_stable_hash(monkeypatch):
    monkeypatch.setattr(socket, "gethostname", lambda: "alpha")
    first = mac_host()
    second = mac_host()
    assert first == second
    (key, value), = first
    assert key == "cq.machost"
    assert re.fullmatch(r"[0-9a-f]{40}", value)
    monkeypatch.setattr(socket, "gethostname", lambda: "beta")
    assert mac_host()[0][1] != value