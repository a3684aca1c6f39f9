"""MQTT-driven relay controller for Raspberry Pi GPIO boards."""

__version__ = "0.1.0"
