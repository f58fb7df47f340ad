"""Ordered broker shutdown."""

import asyncio
from typing import Optional

from embedded_kafka.diagnostics import Sink, null_sink
from embedded_kafka.settings import KafkaDistribution


async def run_stop_script(distribution: KafkaDistribution, sink: Optional[Sink] = None) -> Optional[int]:
    """
    Run kafka-server-stop and wait for it.

    The stock script exits 1 when no broker is left to stop, which is the
    normal case here, so the exit code is only reported. Returns None if the
    script could not be launched.
    """
    sink = sink or null_sink
    try:
        process = await asyncio.create_subprocess_exec(
            str(distribution.stop_script),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            stdin=asyncio.subprocess.DEVNULL,
        )
    except OSError as exc:
        sink("broker.stop_script", script=distribution.stop_script, error=exc)
        return None

    stdout, _ = await process.communicate()
    sink(
        "broker.stop_script",
        script=distribution.stop_script,
        returncode=process.returncode,
        output=stdout.decode("utf-8", errors="replace").strip(),
    )
    return process.returncode


async def stop_broker(process: asyncio.subprocess.Process, distribution: KafkaDistribution,
                      sink: Optional[Sink] = None) -> int:
    """
    Kill the broker, wait for it to exit, then run the stop script.

    The stop script must not run before the child is gone or it races the
    kill. Calling this twice for the same process is not supported.

    Returns:
        The broker's exit code
    """
    sink = sink or null_sink
    sink("broker.killing", pid=process.pid)
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass  # exited between the check and the signal

    returncode = await process.wait()
    sink("broker.exited", pid=process.pid, returncode=returncode)

    await run_stop_script(distribution, sink)
    sink("broker.stopped", pid=process.pid)
    return returncode
