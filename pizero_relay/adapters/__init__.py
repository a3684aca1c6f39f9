"""Adapter modules for external integrations."""

from .gpio import GpioZeroDriver
from .mqtt import MQTTClient, MQTTConnectionError

__all__ = [
    "GpioZeroDriver",
    "MQTTClient",
    "MQTTConnectionError",
]
