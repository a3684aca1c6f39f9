"""MQTT adapter encapsulating paho-mqtt client usage."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import paho.mqtt.client as mqtt

from ..config import MQTTConfig, ResilienceConfig
from ..core.errors import RelayError

LOGGER = logging.getLogger(__name__)

MessageHandler = Callable[[str, bytes], Awaitable[None] | None]

# Reason codes at or above 0x80 are failures (MQTT v5 numbering, which
# paho also uses for granted QoS in v3.1.1 SUBACKs).
_FAILURE_THRESHOLD = 0x80


class MQTTConnectionError(RelayError):
    """Raised when the MQTT client fails to establish a connection."""


def _reason_value(code: Any) -> int:
    return int(getattr(code, "value", code))


class MQTTClient:
    """Async-friendly wrapper over the threaded paho-mqtt client.

    Messages are delivered on paho's network thread. Topics registered
    with :meth:`add_subscription` are subscribed again on every
    (re)connect, so they survive broker restarts.
    """

    def __init__(
        self,
        config: MQTTConfig,
        *,
        client_id: str,
        resilience: Optional[ResilienceConfig] = None,
    ) -> None:
        self.config = config
        self.client_id = client_id
        self.keepalive = config.keepalive
        self.resilience = resilience or ResilienceConfig()

        self._client: Optional[mqtt.Client] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._connected_event: Optional[asyncio.Event] = None
        self._disconnect_event: Optional[asyncio.Event] = None
        self._message_handler: Optional[MessageHandler] = None
        self._last_connect_rc: Optional[int] = None
        self._connected: bool = False
        self._subscriptions: Dict[str, int] = {}
        self._disconnect_handlers: List[Callable[[int], None]] = []
        self._connect_handlers: List[Callable[[int], None]] = []

    async def connect(self, timeout: Optional[float] = None) -> None:
        """Connect to the MQTT broker and wait for acknowledgement."""

        if timeout is None:
            timeout = self.resilience.connect_timeout_seconds

        self._loop = asyncio.get_running_loop()
        self._connected_event = asyncio.Event()
        self._disconnect_event = asyncio.Event()
        self._last_connect_rc = None

        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
        )
        client.enable_logger(LOGGER)

        if self.config.username:
            client.username_pw_set(self.config.username, self.config.password)

        client.reconnect_delay_set(
            min_delay=max(1, int(self.resilience.reconnect_initial_seconds)),
            max_delay=max(1, int(self.resilience.reconnect_max_seconds)),
        )

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_subscribe = self._on_subscribe
        client.on_message = self._on_message

        self._client = client

        LOGGER.info(
            "Connecting to MQTT broker %s:%s",
            self.config.broker_host,
            self.config.broker_port,
        )

        client.connect_async(
            self.config.broker_host, self.config.broker_port, self.keepalive
        )
        client.loop_start()

        try:
            await asyncio.wait_for(self._connected_event.wait(), timeout=timeout)
            if self._last_connect_rc is None or self._last_connect_rc != 0:
                raise MQTTConnectionError(
                    f"MQTT broker rejected connection (rc={self._last_connect_rc})"
                )
        except asyncio.TimeoutError as exc:
            client.loop_stop()
            self._client = None
            raise MQTTConnectionError("Timed out connecting to MQTT broker") from exc
        except MQTTConnectionError:
            client.loop_stop()
            self._client = None
            raise

    async def disconnect(self, timeout: float = 5.0) -> None:
        """Gracefully disconnect from the broker."""

        if not self._client:
            return

        assert self._disconnect_event is not None

        was_connected = self._connected
        self._client.disconnect()

        try:
            if was_connected:
                await asyncio.wait_for(self._disconnect_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            LOGGER.warning("Timed out waiting for MQTT disconnect acknowledgement")
        finally:
            self._client.loop_stop()
            self._client = None
        self._connected = False

    def add_subscription(self, topic: str, qos: int = 1) -> None:
        """Subscribe to ``topic`` now (if connected) and after every reconnect."""

        self._subscriptions[topic] = qos
        if self._client and self._connected:
            self._subscribe_now(topic, qos)

    def _subscribe_now(self, topic: str, qos: int) -> None:
        if not self._client:
            raise RuntimeError("MQTT client not connected")
        result, _ = self._client.subscribe(topic, qos=qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            raise MQTTConnectionError(f"Subscribe failed with rc={result}")

    def set_message_handler(self, handler: Optional[MessageHandler]) -> None:
        self._message_handler = handler

    def register_disconnect_handler(self, handler: Callable[[int], None]) -> None:
        self._disconnect_handlers.append(handler)

    def register_connect_handler(self, handler: Callable[[int], None]) -> None:
        self._connect_handlers.append(handler)

    # ------------------------------------------------------------------
    # Internal callbacks bridging the threaded paho callbacks into asyncio
    # ------------------------------------------------------------------
    def _set_event(self, event: Optional[asyncio.Event]) -> None:
        if event is None or self._loop is None:
            return
        self._loop.call_soon_threadsafe(event.set)

    def _on_connect(
        self, client: mqtt.Client, userdata, flags, reason_code, properties=None
    ) -> None:
        rc = _reason_value(reason_code)
        self._last_connect_rc = rc
        if rc == 0:
            LOGGER.info("Connected to MQTT broker")
            self._connected = True
            self._resubscribe(client)
            self._set_event(self._connected_event)
            if self._loop:
                for handler in self._connect_handlers:
                    self._loop.call_soon_threadsafe(handler, rc)
        else:
            LOGGER.error("MQTT connection failed with rc=%s (%s)", rc, reason_code)
            self._connected = False
            self._set_event(self._connected_event)

    def _resubscribe(self, client: mqtt.Client) -> None:
        for topic, qos in self._subscriptions.items():
            result, _ = client.subscribe(topic, qos=qos)
            if result != mqtt.MQTT_ERR_SUCCESS:
                LOGGER.error("Error subscribing to %s: rc=%s", topic, result)
                client.disconnect()
                return
            LOGGER.info("Subscribed to %s (qos=%d)", topic, qos)

    def _on_subscribe(
        self, client: mqtt.Client, userdata, mid, reason_codes, properties=None
    ) -> None:
        granted = [_reason_value(code) for code in reason_codes]
        for index, value in enumerate(granted):
            LOGGER.debug("Subscription %d: granted qos = %d", index, value)

        if granted and all(value >= _FAILURE_THRESHOLD for value in granted):
            LOGGER.error("All subscriptions rejected by broker; disconnecting")
            client.disconnect()

    def _on_disconnect(
        self, client: mqtt.Client, userdata, flags, reason_code, properties=None
    ) -> None:
        rc = _reason_value(reason_code)
        LOGGER.info("Disconnected from MQTT broker (rc=%s)", rc)
        self._set_event(self._disconnect_event)
        self._connected = False
        if self._loop:
            for handler in self._disconnect_handlers:
                self._loop.call_soon_threadsafe(handler, rc)

    def _on_message(
        self, client: mqtt.Client, userdata, message: mqtt.MQTTMessage
    ) -> None:
        handler = self._message_handler
        if not handler:
            return

        try:
            result = handler(message.topic, message.payload)
            if asyncio.iscoroutine(result):
                if self._loop is None:
                    result.close()
                    return
                asyncio.run_coroutine_threadsafe(result, self._loop)
        except Exception:  # pragma: no cover
            LOGGER.exception("MQTT message handler raised an exception")
