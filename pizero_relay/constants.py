"""Constants used across the pizero-relay package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "pizero-relay"
APP_TITLE = "Pi Zero Relay Controller"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / APP_NAME / DEFAULT_CONFIG_FILENAME

DEFAULT_TOPIC = "relays"
DEFAULT_BROKER_HOST = "192.168.0.1"
DEFAULT_BROKER_PORT = 1883
DEFAULT_KEEPALIVE = 60
DEFAULT_QOS = 1

CHANNEL_COUNT = 16
FRAME_LENGTH = 2

# wiringPi pins 0-15 expressed as BCM GPIO numbers
DEFAULT_PINS = (17, 18, 27, 22, 23, 24, 25, 4, 2, 3, 8, 7, 10, 9, 11, 14)
