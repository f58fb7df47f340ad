"""
Ephemeral single-node Kafka brokers for tests.

Example:
    broker = await make_kafka_server()
    try:
        producer = AIOKafkaProducer(bootstrap_servers=broker.bootstrap_servers)
        ...
    finally:
        await broker.close()
"""

from .errors import (
    EmbeddedKafkaError,
    PortAllocationError,
    FilesystemError,
    ConfigError,
    StorageInitError,
    ProcessSpawnError,
    BrokerClosedError,
)

from .settings import HarnessSettings, KafkaDistribution, load_settings
from .diagnostics import ConsoleSink, null_sink
from .ports import PortAllocator, PortPair
from .workspace import Workspace, create_workspace
from .config import generate_config
from .storage import initialize_storage
from .process import BrokerHandle, start_broker
from .shutdown import stop_broker
from .manager import KafkaManager, default_allocator, make_kafka_server

__version__ = "0.1.0"

__all__ = [
    # Errors
    'EmbeddedKafkaError',
    'PortAllocationError',
    'FilesystemError',
    'ConfigError',
    'StorageInitError',
    'ProcessSpawnError',
    'BrokerClosedError',

    # Settings and diagnostics
    'HarnessSettings',
    'KafkaDistribution',
    'load_settings',
    'ConsoleSink',
    'null_sink',

    # Pipeline steps
    'PortAllocator',
    'PortPair',
    'Workspace',
    'create_workspace',
    'generate_config',
    'initialize_storage',
    'start_broker',
    'stop_broker',

    # Entry points
    'BrokerHandle',
    'KafkaManager',
    'default_allocator',
    'make_kafka_server',
]
