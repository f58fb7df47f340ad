"""Exceptions raised by the embedded Kafka harness."""

from typing import Optional


class EmbeddedKafkaError(Exception):
    """Base class for every harness failure."""


class PortAllocationError(EmbeddedKafkaError):
    """Raised when no usable port pair can be found."""


class FilesystemError(EmbeddedKafkaError):
    """Raised when the instance workspace cannot be created."""


class ConfigError(EmbeddedKafkaError):
    """Raised when settings or the broker config cannot be read or written."""


class StorageInitError(EmbeddedKafkaError):
    """Raised when the storage format tool fails."""

    def __init__(self, message: str, returncode: Optional[int] = None, output: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.output = output

    def __str__(self) -> str:
        text = super().__str__()
        if self.output:
            text += f"\n{self.output.rstrip()}"
        return text


class ProcessSpawnError(EmbeddedKafkaError):
    """Raised when the broker process cannot be launched or dies during startup."""

    def __init__(self, message: str, returncode: Optional[int] = None, output: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.output = output

    def __str__(self) -> str:
        text = super().__str__()
        if self.output:
            text += f"\nOutput tail:\n{self.output.rstrip()}"
        return text


class BrokerClosedError(EmbeddedKafkaError):
    """Raised when close() is called on a handle that was already closed."""
