"""Command-line interface for pizero-relay."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from . import constants
from .app import RelayControllerApp
from .config import ConfigError, RelayConfig, load_config

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=constants.APP_NAME,
        description="Drive up to 16 relays from 2-byte MQTT commands",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("start", help="Start the relay controller daemon")
    subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )

    return parser


def format_banner(title: str = constants.APP_TITLE) -> str:
    """Frame ``title`` in a box of ``#`` characters."""

    border = "#" * (len(title) + 4)
    return f"{border}\n# {title} #\n{border}\n"


def format_settings(config: RelayConfig) -> str:
    return (
        f"TOPIC: {config.mqtt.topic}\n"
        f"BROKER: {config.mqtt.broker_host}:{config.mqtt.broker_port}\n"
    )


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Invalid configuration in {args.config!s}: {exc}", file=sys.stderr)
        return 1

    if args.command == "start":
        print(format_banner())
        print(format_settings(config))
        return RelayControllerApp.start(config)

    if args.command == "show-config":
        print(f"Configuration loaded from {config.path!s}\n")
        for section in config.raw.sections():
            print(f"[{section}]")
            for key, value in config.raw[section].items():
                if key == "password" and value:
                    value = "********"
                print(f"{key} = {value}")
            print()
        return 0

    LOGGER.error("Unknown command: %s", args.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
