"""Diagnostic sink tests."""

import io

from rich.console import Console

from embedded_kafka.diagnostics import ConsoleSink, null_sink


def _console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None)


def test_quiet_sink_prints_nothing():
    console = _console()
    sink = ConsoleSink(verbose=False, console=console)
    sink("broker.ready", pid=1, port=18000)
    sink.panel("title", "body")
    assert console.file.getvalue() == ""


def test_event_fields():
    console = _console()
    ConsoleSink(verbose=True, console=console)("broker.ready", pid=42, port=18000)
    assert console.file.getvalue().strip() == "broker.ready pid=42 port=18000"


def test_broker_output_is_labelled_by_stream():
    console = _console()
    sink = ConsoleSink(verbose=True, console=console)
    sink("broker.output", pid=7, stream="stderr", text="[2024-01-01] WARN something\n")
    assert console.file.getvalue().strip() == "kafka[7] stderr: [2024-01-01] WARN something"


def test_markup_in_values_is_escaped():
    console = _console()
    ConsoleSink(verbose=True, console=console)("pipeline.failed", error="[red]boom[/red]")
    assert "[red]boom[/red]" in console.file.getvalue()


def test_panel():
    console = _console()
    ConsoleSink(verbose=True, console=console).panel("Kafka broker ready", "bootstrap: localhost:18000")
    out = console.file.getvalue()
    assert "Kafka broker ready" in out
    assert "bootstrap: localhost:18000" in out


def test_null_sink_accepts_anything():
    assert null_sink("anything", a=1, b="two") is None
