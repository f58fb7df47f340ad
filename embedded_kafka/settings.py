"""
Harness settings and Kafka distribution layout.

Settings are resolved in three layers:
- built-in defaults
- an optional TOML file (``embedded_kafka.toml`` or ``$EMBEDDED_KAFKA_CONFIG``)
- environment variable overrides
"""

import os
import sys
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import toml

from embedded_kafka.errors import ConfigError

CONFIG_ENV = "EMBEDDED_KAFKA_CONFIG"
DEFAULT_CONFIG_FILE = "embedded_kafka.toml"
VERBOSE_ENV = "KAFKA_PLEASE_LOG"
MONITORING_PORT_ENV = "JMX_PORT"

# Env var -> settings field
ENV_OVERRIDES = {
    "KAFKA_HOME": "kafka_home",
    "EMBEDDED_KAFKA_STARTUP_WAIT": "startup_wait",
    "EMBEDDED_KAFKA_BASE_PORT": "base_port",
}

IS_WINDOWS = sys.platform == "win32"


@dataclass(frozen=True)
class HarnessSettings:
    """
    Tunables for one harness.

    Attributes:
        kafka_home: Root of an unpacked Kafka distribution
        template_path: Broker config template; defaults to config/server.properties
        base_port: First port the allocator probes
        startup_wait: Seconds to wait after spawning the broker
        listener_host: Host name written into the listener addresses
        workspace_prefix: Prefix of the per-instance temp directory
        standalone_format: Pass --standalone to the storage format tool
        verbose: Print diagnostics and broker output
        output_tail_bytes: How much broker output to keep for error reports
    """
    kafka_home: Path = Path("kafka")
    template_path: Optional[Path] = None
    base_port: int = 18000
    startup_wait: float = 10.0
    listener_host: str = "localhost"
    workspace_prefix: str = "kafka-"
    standalone_format: bool = True
    verbose: bool = False
    output_tail_bytes: int = 8192

    @property
    def resolved_template(self) -> Path:
        if self.template_path is not None:
            return Path(self.template_path)
        return Path(self.kafka_home) / "config" / "server.properties"


@dataclass(frozen=True)
class KafkaDistribution:
    """Paths of the scripts shipped with a Kafka distribution."""
    home: Path
    storage_script: Path
    start_script: Path
    stop_script: Path

    @classmethod
    def from_settings(cls, settings: HarnessSettings) -> "KafkaDistribution":
        home = Path(settings.kafka_home)
        if IS_WINDOWS:
            bin_dir, suffix = home / "bin" / "windows", ".bat"
        else:
            bin_dir, suffix = home / "bin", ".sh"
        return cls(
            home=home,
            storage_script=bin_dir / f"kafka-storage{suffix}",
            start_script=bin_dir / f"kafka-server-start{suffix}",
            stop_script=bin_dir / f"kafka-server-stop{suffix}",
        )


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw TOML/env value to the type of the settings field."""
    try:
        if name in ("kafka_home", "template_path"):
            return None if value in (None, "") else Path(value)
        if name in ("base_port", "output_tail_bytes"):
            result = int(value)
            if result <= 0:
                raise ValueError(f"must be positive, got {result}")
            return result
        if name == "startup_wait":
            result = float(value)
            if result < 0:
                raise ValueError(f"must not be negative, got {result}")
            return result
        if name in ("standalone_format", "verbose"):
            if isinstance(value, str):
                return value.strip().lower() in ("1", "true", "yes", "verbose")
            return bool(value)
        return str(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value for {name!r}: {value!r} ({exc})") from exc


def _read_toml(path: Path) -> Dict[str, Any]:
    try:
        data = toml.load(path)
    except FileNotFoundError as exc:
        raise ConfigError(f"Settings file not found: {path}") from exc
    except (toml.TomlDecodeError, OSError) as exc:
        raise ConfigError(f"Could not read settings file {path}: {exc}") from exc

    # Keys may live at the top level or under [embedded_kafka]
    section = data.get("embedded_kafka", data)
    if not isinstance(section, dict):
        raise ConfigError(f"[embedded_kafka] in {path} must be a table")
    return section


def load_settings(path: Optional[Path] = None,
                  environ: Optional[Mapping[str, str]] = None,
                  **overrides: Any) -> HarnessSettings:
    """
    Build settings from defaults, a TOML file, the environment and explicit overrides.

    Args:
        path: TOML file to read; falls back to $EMBEDDED_KAFKA_CONFIG, then
            ./embedded_kafka.toml if it exists
        environ: Environment mapping (defaults to os.environ)
        **overrides: Field values that win over everything else

    Raises:
        ConfigError: On unreadable TOML, unknown keys or invalid values
    """
    env = os.environ if environ is None else environ
    known = {f.name for f in fields(HarnessSettings)}
    values: Dict[str, Any] = {}

    if path is None and env.get(CONFIG_ENV):
        path = Path(env[CONFIG_ENV])
    if path is None and Path(DEFAULT_CONFIG_FILE).is_file():
        path = Path(DEFAULT_CONFIG_FILE)

    if path is not None:
        path = Path(path)
        for key, value in _read_toml(path).items():
            if key not in known:
                raise ConfigError(f"Unknown setting {key!r} in {path}")
            values[key] = _coerce(key, value)
        # Relative paths in the file are relative to the file itself
        for key in ("kafka_home", "template_path"):
            if values.get(key) is not None and not values[key].is_absolute():
                values[key] = path.parent / values[key]

    for env_name, key in ENV_OVERRIDES.items():
        if env.get(env_name):
            values[key] = _coerce(key, env[env_name])
    if VERBOSE_ENV in env:
        values["verbose"] = env[VERBOSE_ENV] == "verbose"

    for key, value in overrides.items():
        if key not in known:
            raise ConfigError(f"Unknown setting {key!r}")
        values[key] = _coerce(key, value)

    return replace(HarnessSettings(), **values)
