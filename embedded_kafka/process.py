"""
Broker process supervision.

start_broker() spawns kafka-server-start against a generated config, drains
its output in the background and waits a fixed interval before handing back
a BrokerHandle. There is no protocol-level readiness probe: for a short
window after start, clients can still see "coordinator not available" and
must retry at the client layer.
"""

import asyncio
import codecs
import os
from collections import deque
from pathlib import Path
from typing import Deque, List, Optional

from embedded_kafka.config import CONFIG_FILE_NAME
from embedded_kafka.diagnostics import Sink, null_sink
from embedded_kafka.errors import BrokerClosedError, ProcessSpawnError
from embedded_kafka.ports import PortPair
from embedded_kafka.settings import MONITORING_PORT_ENV, HarnessSettings, KafkaDistribution
from embedded_kafka.shutdown import stop_broker
from embedded_kafka.workspace import Workspace

READ_CHUNK = 4096


class OutputDrain:
    """
    Reads a child's stdout and stderr until EOF.

    Every chunk goes to the sink; only the last ``tail_bytes`` characters
    are kept, for error reports.
    """

    def __init__(self, process: asyncio.subprocess.Process, sink: Sink, tail_bytes: int = 8192):
        self._process = process
        self._sink = sink
        self._tail: Deque[str] = deque()
        self._tail_size = 0
        self._tail_bytes = tail_bytes
        self.tasks: List[asyncio.Task] = []
        for name, stream in (("stdout", process.stdout), ("stderr", process.stderr)):
            if stream is not None:
                self.tasks.append(asyncio.ensure_future(self._drain(name, stream)))

    async def _drain(self, name: str, stream: asyncio.StreamReader) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await stream.read(READ_CHUNK)
            text = decoder.decode(chunk, final=not chunk)
            if text:
                self._remember(text)
                self._sink("broker.output", pid=self._process.pid, stream=name, text=text)
            if not chunk:
                return

    def _remember(self, text: str) -> None:
        self._tail.append(text)
        self._tail_size += len(text)
        while self._tail_size > self._tail_bytes and len(self._tail) > 1:
            self._tail_size -= len(self._tail.popleft())

    def tail(self) -> str:
        return "".join(self._tail)[-self._tail_bytes:]

    async def finish(self, timeout: float = 0) -> None:
        """Give the drains up to ``timeout`` seconds to reach EOF, then cancel the rest."""
        if not self.tasks:
            return
        _, pending = await asyncio.wait(self.tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        await asyncio.gather(*self.tasks, return_exceptions=True)


class BrokerHandle:
    """
    A running broker.

    close() is the only way to release it: it kills the process, waits for
    it, runs the stop script and removes the workspace. It must be called
    exactly once; a second call raises BrokerClosedError.
    """

    def __init__(self, process: asyncio.subprocess.Process, ports: PortPair,
                 workspace: Workspace, distribution: KafkaDistribution,
                 drain: OutputDrain, host: str = "localhost", sink: Optional[Sink] = None):
        self._process = process
        self.ports = ports
        self.workspace = workspace
        self.host = host
        self._distribution = distribution
        self._drain = drain
        self._sink = sink or null_sink
        self._closed = False

    @property
    def client_port(self) -> int:
        return self.ports.client_port

    @property
    def controller_port(self) -> int:
        return self.ports.controller_port

    @property
    def bootstrap_servers(self) -> str:
        return f"{self.host}:{self.client_port}"

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode

    @property
    def closed(self) -> bool:
        return self._closed

    def output_tail(self) -> str:
        return self._drain.tail()

    async def close(self) -> None:
        if self._closed:
            raise BrokerClosedError(f"Broker on port {self.client_port} was already closed")
        self._closed = True
        try:
            await stop_broker(self._process, self._distribution, self._sink)
        finally:
            await self._drain.finish(timeout=1.0)
            self.workspace.remove()

    async def __aenter__(self) -> "BrokerHandle":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if not self._closed:
            await self.close()
        return False

    def __repr__(self) -> str:
        state = "closed" if self._closed else "running"
        return f"BrokerHandle(bootstrap={self.bootstrap_servers!r}, pid={self.pid}, {state})"


def child_environment() -> dict:
    """Parent environment with the JMX port cleared so it cannot collide with ours."""
    env = dict(os.environ)
    env[MONITORING_PORT_ENV] = ""
    return env


async def start_broker(workspace: Workspace, ports: PortPair,
                       distribution: KafkaDistribution, settings: HarnessSettings,
                       sink: Optional[Sink] = None) -> BrokerHandle:
    """
    Spawn the broker and wait ``settings.startup_wait`` seconds.

    Raises:
        ProcessSpawnError: If the start script cannot be launched or the
            broker has already exited when the wait is over
    """
    sink = sink or null_sink
    config_path = Path(workspace.path) / CONFIG_FILE_NAME
    sink("broker.starting", script=distribution.start_script, config=config_path)

    try:
        process = await asyncio.create_subprocess_exec(
            str(distribution.start_script),
            str(config_path),
            cwd=str(workspace.path),
            env=child_environment(),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL,
        )
    except OSError as exc:
        raise ProcessSpawnError(f"Could not launch {distribution.start_script}: {exc}") from exc

    drain = OutputDrain(process, sink, settings.output_tail_bytes)

    sink("broker.waiting", pid=process.pid, seconds=settings.startup_wait)
    try:
        await asyncio.sleep(settings.startup_wait)
    except BaseException:
        # No handle exists yet, so the child is reaped here
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()
        await drain.finish(timeout=1.0)
        sink("broker.exited", pid=process.pid, returncode=process.returncode)
        raise

    if process.returncode is not None:
        await drain.finish(timeout=1.0)
        raise ProcessSpawnError(
            f"Broker exited with code {process.returncode} during startup",
            returncode=process.returncode,
            output=drain.tail(),
        )

    sink("broker.ready", pid=process.pid, port=ports.client_port)
    return BrokerHandle(
        process, ports, workspace, distribution, drain,
        host=settings.listener_host, sink=sink,
    )
