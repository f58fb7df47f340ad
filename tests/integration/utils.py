"""
Helpers for tests against a real broker.

The harness waits a fixed time after start and does no readiness probe, so
the first client calls can still hit "coordinator not available" or a
refused connection. These helpers retry at the client layer.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Tuple, Type

from aiokafka.errors import KafkaError


async def retry_async(operation: Callable[[], Awaitable[Any]],
                      timeout: float = 30.0,
                      interval: float = 0.5,
                      retry_on: Tuple[Type[BaseException], ...] = (KafkaError, OSError),
                      description: str = "operation") -> Any:
    """
    Run ``operation`` until it succeeds or ``timeout`` runs out.

    Raises:
        TimeoutError: With the last error, if the operation never succeeded
    """
    start_time = time.monotonic()
    last_error = None

    while time.monotonic() - start_time < timeout:
        try:
            return await operation()
        except retry_on as e:
            last_error = e
        await asyncio.sleep(interval)

    raise TimeoutError(f"{description} did not succeed within {timeout}s. Last error: {last_error!r}")
