"""Storage formatting with the distribution's kafka-storage tool."""

import asyncio
import base64
import uuid
from pathlib import Path
from typing import List, Optional

from embedded_kafka.diagnostics import Sink, null_sink
from embedded_kafka.errors import StorageInitError
from embedded_kafka.settings import KafkaDistribution


def random_cluster_id() -> str:
    """A cluster id in the form ``kafka-storage random-uuid`` prints."""
    while True:
        cluster_id = base64.urlsafe_b64encode(uuid.uuid4().bytes).decode("ascii").rstrip("=")
        # A leading dash would be parsed as a command-line flag
        if not cluster_id.startswith("-"):
            return cluster_id


def format_command(distribution: KafkaDistribution, config_path: Path,
                   cluster_id: str, standalone: bool = True) -> List[str]:
    cmd = [str(distribution.storage_script), "format", "-t", cluster_id, "-c", str(config_path)]
    if standalone:
        cmd.append("--standalone")
    return cmd


async def initialize_storage(config_path: Path, distribution: KafkaDistribution,
                             standalone: bool = True,
                             sink: Optional[Sink] = None) -> str:
    """
    Format the data directory named in ``config_path``.

    Must run once before the first broker start; Kafka refuses to start on an
    unformatted log dir.

    Returns:
        The generated cluster id

    Raises:
        StorageInitError: If the tool cannot be launched or exits non-zero
    """
    sink = sink or null_sink
    cluster_id = random_cluster_id()
    cmd = format_command(distribution, config_path, cluster_id, standalone)

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            stdin=asyncio.subprocess.DEVNULL,
        )
    except OSError as exc:
        raise StorageInitError(f"Could not run {distribution.storage_script}: {exc}") from exc

    stdout, _ = await process.communicate()
    output = stdout.decode("utf-8", errors="replace")

    if process.returncode != 0:
        raise StorageInitError(
            f"Storage format failed with exit code {process.returncode}",
            returncode=process.returncode,
            output=output,
        )

    sink("storage.formatted", cluster_id=cluster_id, output=output.strip())
    return cluster_id
