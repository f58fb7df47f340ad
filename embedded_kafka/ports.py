"""
Port allocation for broker listeners.

Ports are found by scanning upward from a base port. A port is handed out
only if it can be bound right now and this allocator has never handed it out
before. The taken set only grows; it is never reconciled with the OS, so
collisions with other processes running their own allocator are not detected.
"""

import errno
import socket
from dataclasses import dataclass
from typing import FrozenSet, Optional, Set

from embedded_kafka.diagnostics import Sink, null_sink
from embedded_kafka.errors import PortAllocationError

MAX_PORT = 65535

# errno values that mean "someone else has it", not "the probe is broken"
_BUSY_ERRNOS = {errno.EADDRINUSE, errno.EACCES}


@dataclass(frozen=True)
class PortPair:
    """Client and controller listener ports of one broker."""
    client_port: int
    controller_port: int


def resolve_host(host: str) -> str:
    """
    Resolve a listener host name to the IPv4 address the allocator probes.

    Raises:
        PortAllocationError: If the name does not resolve
    """
    try:
        return socket.gethostbyname(host)
    except OSError as exc:
        raise PortAllocationError(f"Cannot resolve listener host {host!r}: {exc}") from exc


class PortAllocator:
    """Hands out bindable ports, never the same one twice."""

    def __init__(self, base_port: int = 18000, host: str = "127.0.0.1",
                 sink: Optional[Sink] = None):
        if not 0 < base_port <= MAX_PORT:
            raise PortAllocationError(f"Base port out of range: {base_port}")
        self.base_port = base_port
        self.host = host
        self._sink = sink or null_sink
        self._taken: Set[int] = set()

    @property
    def taken_ports(self) -> FrozenSet[int]:
        return frozenset(self._taken)

    def is_bindable(self, port: int) -> bool:
        """
        Check whether a TCP listener could bind ``port`` on our host right now.

        Raises:
            PortAllocationError: If the probe fails for a reason other than
                the port being busy
        """
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                sock.bind((self.host, port))
                return True
        except OSError as exc:
            if exc.errno in _BUSY_ERRNOS:
                return False
            raise PortAllocationError(f"Port probe failed on {self.host}:{port}: {exc}") from exc

    def allocate_port(self) -> int:
        """Return the lowest free port at or above the base port and mark it taken."""
        port = self.base_port
        while port <= MAX_PORT:
            if port not in self._taken and self.is_bindable(port):
                self._taken.add(port)
                return port
            port += 1

        raise PortAllocationError(
            f"No free port between {self.base_port} and {MAX_PORT} "
            f"({len(self._taken)} already taken by this harness)"
        )

    def allocate_two_ports(self) -> PortPair:
        """Allocate the client and controller ports for one broker."""
        pair = PortPair(client_port=self.allocate_port(), controller_port=self.allocate_port())
        self._sink("ports.allocated", client=pair.client_port, controller=pair.controller_port)
        return pair
