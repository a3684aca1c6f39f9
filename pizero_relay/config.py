"""Configuration loader for pizero-relay."""

from __future__ import annotations

import logging
from configparser import ConfigParser
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from . import constants
from .core.errors import RelayError
from .core.models import OutputPolarity

LOGGER = logging.getLogger(__name__)


class ConfigError(RelayError):
    """Raised when a configuration value cannot be used."""


@dataclass(slots=True)
class MQTTConfig:
    broker_host: str = constants.DEFAULT_BROKER_HOST
    broker_port: int = constants.DEFAULT_BROKER_PORT
    topic: str = constants.DEFAULT_TOPIC
    qos: int = constants.DEFAULT_QOS
    keepalive: int = constants.DEFAULT_KEEPALIVE
    client_id: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


@dataclass(slots=True)
class GpioConfig:
    pins: Tuple[int, ...] = constants.DEFAULT_PINS
    polarity: OutputPolarity = OutputPolarity.ACTIVE_LOW
    simulate: bool = False


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = None
    log_network: bool = False


@dataclass(slots=True)
class ResilienceConfig:
    reconnect_initial_seconds: float = 1.0
    reconnect_max_seconds: float = 30.0
    connect_timeout_seconds: float = 30.0
    health_enabled: bool = False
    health_host: str = "127.0.0.1"
    health_port: int = 0


@dataclass(slots=True)
class RelayConfig:
    mqtt: MQTTConfig
    gpio: GpioConfig
    logging: LoggingConfig
    resilience: ResilienceConfig
    raw: ConfigParser = field(repr=False)
    path: Path = constants.DEFAULT_CONFIG_PATH


def _parse_pins(value: str) -> Tuple[int, ...]:
    items = [item.strip() for item in value.split(",") if item.strip()]
    if not items:
        raise ConfigError("gpio.pins must list at least one pin")

    pins: List[int] = []
    for item in items:
        try:
            pins.append(int(item))
        except ValueError as exc:
            raise ConfigError(f"gpio.pins contains a non-integer entry: {item!r}") from exc

    if len(pins) > constants.CHANNEL_COUNT:
        raise ConfigError(
            f"gpio.pins lists {len(pins)} pins; at most {constants.CHANNEL_COUNT} are supported"
        )
    if len(set(pins)) != len(pins):
        raise ConfigError("gpio.pins contains duplicate pins")
    return tuple(pins)


def _parse_polarity(value: str) -> OutputPolarity:
    normalised = value.strip().lower().replace("-", "_")
    try:
        return OutputPolarity(normalised)
    except ValueError as exc:
        choices = ", ".join(item.value for item in OutputPolarity)
        raise ConfigError(
            f"Unknown gpio.polarity {value!r} (expected one of: {choices})"
        ) from exc


def _optional(parser: ConfigParser, section: str, option: str) -> Optional[str]:
    value = parser.get(section, option, fallback="").strip()
    return value or None


def _getint(parser: ConfigParser, section: str, option: str) -> int:
    try:
        return parser.getint(section, option)
    except ValueError as exc:
        raise ConfigError(
            f"{section}.{option} must be an integer, got {parser.get(section, option)!r}"
        ) from exc


def _getfloat(parser: ConfigParser, section: str, option: str) -> float:
    try:
        return parser.getfloat(section, option)
    except ValueError as exc:
        raise ConfigError(
            f"{section}.{option} must be a number, got {parser.get(section, option)!r}"
        ) from exc


def _getboolean(parser: ConfigParser, section: str, option: str) -> bool:
    try:
        return parser.getboolean(section, option)
    except ValueError as exc:
        raise ConfigError(
            f"{section}.{option} must be true or false, "
            f"got {parser.get(section, option)!r}"
        ) from exc


def load_config(path: Optional[Path] = None) -> RelayConfig:
    """Load configuration from disk, applying defaults where necessary."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = ConfigParser()
    parser.read_dict(
        {
            "mqtt": {
                "broker_host": constants.DEFAULT_BROKER_HOST,
                "broker_port": str(constants.DEFAULT_BROKER_PORT),
                "topic": constants.DEFAULT_TOPIC,
                "qos": str(constants.DEFAULT_QOS),
                "keepalive": str(constants.DEFAULT_KEEPALIVE),
            },
            "gpio": {
                "pins": ",".join(str(pin) for pin in constants.DEFAULT_PINS),
                "polarity": OutputPolarity.ACTIVE_LOW.value,
                "simulate": "false",
            },
            "logging": {
                "level": "INFO",
                "log_network": "false",
            },
            "resilience": {
                "reconnect_initial_seconds": "1.0",
                "reconnect_max_seconds": "30.0",
                "connect_timeout_seconds": "30.0",
                "health_enabled": "false",
                "health_host": "127.0.0.1",
                "health_port": "0",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)
    else:
        LOGGER.warning("Unable to open %s, using defaults", config_path)

    broker_host_value = parser.get("mqtt", "broker_host").strip()
    broker_port_value = _getint(parser, "mqtt", "broker_port")

    if ":" in broker_host_value:
        host_part, port_part = broker_host_value.rsplit(":", 1)
        try:
            parsed_port = int(port_part)
        except ValueError:
            pass
        else:
            broker_host_value = host_part
            broker_port_value = parsed_port
            parser.set("mqtt", "broker_host", host_part)
            parser.set("mqtt", "broker_port", str(parsed_port))

    qos_value = _getint(parser, "mqtt", "qos")
    if qos_value not in (0, 1, 2):
        raise ConfigError(f"mqtt.qos must be 0, 1 or 2, got {qos_value}")

    topic_value = parser.get("mqtt", "topic").strip()
    if not topic_value:
        raise ConfigError("mqtt.topic must not be empty")

    mqtt_config = MQTTConfig(
        broker_host=broker_host_value,
        broker_port=broker_port_value,
        topic=topic_value,
        qos=qos_value,
        keepalive=max(5, _getint(parser, "mqtt", "keepalive")),
        client_id=_optional(parser, "mqtt", "client_id"),
        username=_optional(parser, "mqtt", "username"),
        password=_optional(parser, "mqtt", "password"),
    )

    gpio = GpioConfig(
        pins=_parse_pins(parser.get("gpio", "pins")),
        polarity=_parse_polarity(parser.get("gpio", "polarity")),
        simulate=_getboolean(parser, "gpio", "simulate"),
    )

    log_path_value = _optional(parser, "logging", "path")
    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(log_path_value).expanduser() if log_path_value else None,
        log_network=_getboolean(parser, "logging", "log_network"),
    )

    reconnect_initial = max(
        0.1, _getfloat(parser, "resilience", "reconnect_initial_seconds")
    )
    resilience = ResilienceConfig(
        reconnect_initial_seconds=reconnect_initial,
        reconnect_max_seconds=max(
            reconnect_initial,
            _getfloat(parser, "resilience", "reconnect_max_seconds"),
        ),
        connect_timeout_seconds=max(
            1.0,
            _getfloat(parser, "resilience", "connect_timeout_seconds"),
        ),
        health_enabled=_getboolean(parser, "resilience", "health_enabled"),
        health_host=parser.get("resilience", "health_host", fallback="127.0.0.1"),
        health_port=_getint(parser, "resilience", "health_port"),
    )

    return RelayConfig(
        mqtt=mqtt_config,
        gpio=gpio,
        logging=logging_config,
        resilience=resilience,
        raw=parser,
        path=config_path,
    )

