"""
Provisioning pipeline for one embedded broker.

Steps, each depending on the previous one:
- allocate a client/controller port pair
- create a private workspace
- write a per-instance server.properties
- format the storage directory
- start the broker and wait for it to settle
"""

from typing import Dict, Optional, Tuple

from embedded_kafka.config import generate_config
from embedded_kafka.diagnostics import ConsoleSink, Sink
from embedded_kafka.ports import PortAllocator, resolve_host
from embedded_kafka.process import BrokerHandle, start_broker
from embedded_kafka.settings import HarnessSettings, KafkaDistribution, load_settings
from embedded_kafka.storage import initialize_storage
from embedded_kafka.workspace import create_workspace

# Process-wide allocators keyed by (base port, probed address)
_default_allocators: Dict[Tuple[int, str], PortAllocator] = {}


def default_allocator(settings: HarnessSettings) -> PortAllocator:
    """
    Return the shared allocator for this base port and listener host.

    Created on first use and kept for the life of the process, so every
    manager and every ``make_kafka_server`` call that does not bring its own
    allocator draws from the same taken-ports set.
    """
    key = (settings.base_port, resolve_host(settings.listener_host))
    allocator = _default_allocators.get(key)
    if allocator is None:
        allocator = PortAllocator(key[0], host=key[1])
        _default_allocators[key] = allocator
    return allocator


class KafkaManager:
    """
    Starts embedded brokers that never share ports with each other.

    Without an explicit allocator the manager uses the process-wide default
    for its base port, so brokers from different managers are disjoint too.
    """

    def __init__(self, settings: Optional[HarnessSettings] = None,
                 allocator: Optional[PortAllocator] = None,
                 sink: Optional[Sink] = None):
        self.settings = settings or load_settings()
        self.distribution = KafkaDistribution.from_settings(self.settings)
        self.sink = sink or ConsoleSink(verbose=self.settings.verbose)
        self.allocator = allocator or default_allocator(self.settings)

    async def start_kafka_server(self) -> BrokerHandle:
        """
        Run the whole pipeline and return a running broker.

        Any failure aborts the remaining steps, removes the workspace and
        propagates unchanged; nothing is retried here. Cancellation cleans
        up the same way.
        """
        settings = self.settings
        ports = self.allocator.allocate_two_ports()
        self.sink("ports.allocated", client=ports.client_port, controller=ports.controller_port)
        workspace = create_workspace(settings.workspace_prefix, sink=self.sink)

        try:
            config_path = generate_config(
                workspace, ports, settings.resolved_template,
                host=settings.listener_host, sink=self.sink,
            )
            await initialize_storage(
                config_path, self.distribution,
                standalone=settings.standalone_format, sink=self.sink,
            )
            handle = await start_broker(workspace, ports, self.distribution, settings, self.sink)
        except BaseException as exc:
            self.sink("pipeline.failed", error=type(exc).__name__, workspace=workspace.path)
            workspace.remove()
            raise

        if isinstance(self.sink, ConsoleSink):
            self.sink.panel(
                "Kafka broker ready",
                f"bootstrap: {handle.bootstrap_servers}\n"
                f"controller: {settings.listener_host}:{handle.controller_port}\n"
                f"workspace: {workspace.path}\n"
                f"pid: {handle.pid}",
            )
        return handle


async def make_kafka_server(settings: Optional[HarnessSettings] = None,
                            allocator: Optional[PortAllocator] = None,
                            sink: Optional[Sink] = None) -> BrokerHandle:
    """
    Start one embedded broker with default settings unless told otherwise.

    Calls without an ``allocator`` share the process-wide default, so their
    brokers never get overlapping ports.
    """
    return await KafkaManager(settings, allocator, sink).start_kafka_server()
