"""
End-to-end tests against a real Kafka distribution.

Skipped unless a distribution is found at the configured kafka_home
(``KAFKA_HOME`` or ``embedded_kafka.toml``). Each broker costs the full
startup wait, so these are marked slow.
"""

import asyncio
import uuid

import pytest

pytest.importorskip("aiokafka")

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer
from aiokafka.admin import AIOKafkaAdminClient, NewTopic
from aiokafka.errors import TopicAlreadyExistsError

from embedded_kafka.errors import BrokerClosedError
from utils import retry_async

pytestmark = [pytest.mark.integration, pytest.mark.slow]


async def create_topic(bootstrap: str, topic: str) -> None:
    async def attempt():
        admin = AIOKafkaAdminClient(bootstrap_servers=bootstrap)
        await admin.start()
        try:
            await admin.create_topics([NewTopic(name=topic, num_partitions=1, replication_factor=1)])
        except TopicAlreadyExistsError:
            pass  # an earlier attempt got through before timing out
        finally:
            await admin.close()

    await retry_async(attempt, timeout=60, description=f"create topic {topic}")


async def produce(bootstrap: str, topic: str, payload: bytes) -> None:
    producer = AIOKafkaProducer(bootstrap_servers=bootstrap)
    await retry_async(producer.start, description="producer start")
    try:
        await producer.send_and_wait(topic, payload)
    finally:
        await producer.stop()


async def consume_one(bootstrap: str, topic: str) -> bytes:
    consumer = AIOKafkaConsumer(
        topic,
        bootstrap_servers=bootstrap,
        group_id=f"test-group-{uuid.uuid4().hex[:8]}",
        auto_offset_reset="earliest",
    )
    await retry_async(consumer.start, description="consumer start")
    try:
        message = await asyncio.wait_for(consumer.getone(), timeout=60)
        return message.value
    finally:
        await consumer.stop()


class TestKafkaRoundtrip:

    @pytest.mark.asyncio
    async def test_produce_and_consume(self, kafka_broker):
        topic = f"test-topic-{uuid.uuid4().hex[:8]}"
        payload = b"hello kafka"

        await create_topic(kafka_broker.bootstrap_servers, topic)
        await produce(kafka_broker.bootstrap_servers, topic, payload)
        received = await consume_one(kafka_broker.bootstrap_servers, topic)

        assert received == payload

    @pytest.mark.asyncio
    async def test_close_twice(self, kafka_manager):
        broker = await kafka_manager.start_kafka_server()
        await broker.close()
        with pytest.raises(BrokerClosedError):
            await broker.close()

    @pytest.mark.asyncio
    async def test_concurrent_brokers_have_disjoint_ports(self, kafka_manager):
        first, second = await asyncio.gather(
            kafka_manager.start_kafka_server(),
            kafka_manager.start_kafka_server(),
        )
        try:
            assert {first.client_port, first.controller_port}.isdisjoint(
                {second.client_port, second.controller_port}
            )
        finally:
            # The stock stop script stops every local broker, so close order does not matter
            await first.close()
            await second.close()
