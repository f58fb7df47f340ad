"""
Start one embedded broker and keep it up until interrupted.

Usage examples:
    python -m embedded_kafka                              # settings from env / embedded_kafka.toml
    python -m embedded_kafka --kafka-home ~/kafka_2.13-3.9.0 --verbose
    python -m embedded_kafka --startup-wait 20
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from embedded_kafka.errors import EmbeddedKafkaError
from embedded_kafka.manager import KafkaManager
from embedded_kafka.settings import load_settings

console = Console()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m embedded_kafka",
        description="Run a throwaway single-node Kafka broker",
    )
    parser.add_argument("--config", type=Path, help="TOML settings file")
    parser.add_argument("--kafka-home", type=Path, help="Kafka distribution directory")
    parser.add_argument("--startup-wait", type=float, help="Seconds to wait after spawning the broker")
    parser.add_argument("--base-port", type=int, help="First port to probe")
    parser.add_argument("--verbose", action="store_true", help="Show harness diagnostics and broker output")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> None:
    overrides = {
        "kafka_home": args.kafka_home,
        "startup_wait": args.startup_wait,
        "base_port": args.base_port,
        "verbose": True if args.verbose else None,
    }
    settings = load_settings(args.config, **{k: v for k, v in overrides.items() if v is not None})

    console.print(f"[blue]Starting Kafka from {settings.kafka_home}...[/blue]")
    broker = await KafkaManager(settings).start_kafka_server()
    console.print(f"[green]Kafka is up at {broker.bootstrap_servers} (pid {broker.pid})[/green]")
    console.print("Press Ctrl-C to stop.")

    try:
        while broker.returncode is None:
            await asyncio.sleep(1)
        console.print(f"[red]Broker exited on its own with code {broker.returncode}[/red]")
    finally:
        console.print("[red]Stopping Kafka...[/red]")
        await broker.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        return 0
    except EmbeddedKafkaError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
