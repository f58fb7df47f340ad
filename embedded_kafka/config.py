"""Per-instance broker config generation."""

import os
from pathlib import Path
from typing import Dict, Optional, Union

from embedded_kafka.diagnostics import Sink, null_sink
from embedded_kafka.errors import ConfigError
from embedded_kafka.ports import PortPair
from embedded_kafka.properties import PropertiesEditor
from embedded_kafka.workspace import Workspace

CONFIG_FILE_NAME = "server.properties"
LOG_DIR_NAME = "kafka-logs"
CONTROLLER_LISTENER = "CONTROLLER"
CLIENT_LISTENER = "PLAINTEXT"


def instance_overrides(log_dir: Union[str, Path], ports: PortPair,
                       host: str = "localhost") -> Dict[str, str]:
    """The five keys that make a template config private to one broker."""
    listeners = (
        f"{CLIENT_LISTENER}://{host}:{ports.client_port},"
        f"{CONTROLLER_LISTENER}://{host}:{ports.controller_port}"
    )
    return {
        "log.dirs": os.path.normpath(str(log_dir)),
        "controller.quorum.bootstrap.servers": f"{host}:{ports.controller_port}",
        "listeners": listeners,
        "advertised.listeners": listeners,
        "controller.listener.names": CONTROLLER_LISTENER,
    }


def generate_config(workspace: Union[Workspace, Path], ports: PortPair,
                    template_path: Union[str, Path], host: str = "localhost",
                    sink: Optional[Sink] = None) -> Path:
    """
    Write ``server.properties`` for one broker into its workspace.

    The template is copied line for line; only log.dirs, the controller
    bootstrap address, listeners, advertised.listeners and
    controller.listener.names are replaced.

    Raises:
        ConfigError: If the template cannot be read or the file cannot be written
    """
    sink = sink or null_sink
    root = Path(os.fspath(workspace))

    try:
        editor = PropertiesEditor.load(template_path)
    except OSError as exc:
        raise ConfigError(f"Could not read config template {template_path}: {exc}") from exc

    for key, value in instance_overrides(root / LOG_DIR_NAME, ports, host).items():
        editor.set(key, value)

    destination = root / CONFIG_FILE_NAME
    try:
        editor.save(destination)
    except OSError as exc:
        raise ConfigError(f"Could not write broker config {destination}: {exc}") from exc

    sink("config.written", path=destination)
    return destination
