"""
Diagnostic output for the harness.

Every component takes a ``sink`` callable instead of writing to a global
logger. A sink receives an event name plus keyword fields.
"""

from typing import Any, Callable, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

Sink = Callable[..., None]

# Blue while starting, red while stopping
EVENT_STYLES = {
    "ports.allocated": "cyan",
    "workspace.created": "cyan",
    "workspace.removed": "dim",
    "config.written": "cyan",
    "storage.formatted": "cyan",
    "broker.starting": "blue",
    "broker.waiting": "yellow",
    "broker.ready": "green",
    "broker.exited": "yellow",
    "broker.killing": "red",
    "broker.stop_script": "red",
    "broker.stopped": "red",
    "pipeline.failed": "bold red",
}


class ConsoleSink:
    """Prints events with rich markup when verbose is on; silent otherwise."""

    def __init__(self, verbose: bool = False, console: Optional[Console] = None):
        self.verbose = verbose
        self.console = console or Console(stderr=True)

    def __call__(self, event: str, **fields: Any) -> None:
        if not self.verbose:
            return

        if event == "broker.output":
            stream = fields.get("stream", "stdout")
            color = "magenta" if stream == "stderr" else "white"
            text = str(fields.get("text", "")).rstrip("\n")
            self.console.print(
                f"[{color}]kafka[{fields.get('pid')}] {stream}:[/{color}] {escape(text)}",
                highlight=False,
            )
            return

        style = EVENT_STYLES.get(event, "white")
        details = " ".join(f"{key}={value}" for key, value in fields.items())
        self.console.print(f"[{style}]{event}[/{style}] {escape(details)}", highlight=False)

    def panel(self, title: str, body: str) -> None:
        if self.verbose:
            self.console.print(Panel(escape(body), title=title, expand=False))


def null_sink(event: str, **fields: Any) -> None:
    """Drop every event."""
