"""
pytest fixtures for embedded brokers.

Registered as a pytest plugin through the ``pytest11`` entry point, so any
project that installs embedded-kafka can use them directly:

    @pytest.mark.asyncio
    async def test_roundtrip(kafka_broker):
        producer = AIOKafkaProducer(bootstrap_servers=kafka_broker.bootstrap_servers)
        ...

Brokers need a Kafka distribution; tests are skipped when none is found at
the configured ``kafka_home``.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio

from embedded_kafka.manager import KafkaManager
from embedded_kafka.process import BrokerHandle
from embedded_kafka.settings import KafkaDistribution, load_settings


@pytest.fixture(scope="session")
def kafka_manager() -> KafkaManager:
    """One manager, and so one port allocator, for the whole test session."""
    settings = load_settings()
    distribution = KafkaDistribution.from_settings(settings)
    if not distribution.start_script.exists():
        pytest.skip(f"No Kafka distribution at {distribution.home}")
    return KafkaManager(settings)


@pytest_asyncio.fixture
async def kafka_broker(kafka_manager: KafkaManager) -> AsyncGenerator[BrokerHandle, None]:
    """Provide a running broker, closed after the test."""
    broker = await kafka_manager.start_kafka_server()
    try:
        yield broker
    finally:
        if not broker.closed:
            await broker.close()
