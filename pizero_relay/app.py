"""Main application entry-point for pizero-relay."""

from __future__ import annotations

import asyncio
import logging
import os
from enum import Enum
from typing import Optional

from . import constants
from .adapters import GpioZeroDriver, MQTTClient, MQTTConnectionError
from .config import RelayConfig, load_config
from .core import CommandDispatcher, GpioSetupError, OutputBank, OutputDriver
from .health import HealthReporter, HealthServer
from .logging import configure_logging

LOGGER = logging.getLogger(__name__)


class AgentState(str, Enum):
    COLD_START = "cold_start"
    AWAITING_MQTT = "awaiting_mqtt"
    ACTIVE = "active"
    DEGRADED = "degraded"
    STOPPING = "stopping"


class RelayControllerApp:
    """Coordinates daemon startup and shutdown.

    Startup order matters: the output bank is built (and every relay
    driven off) before the MQTT client is created, so no frame can be
    dispatched against unconfigured lines.

    The output driver and MQTT client can be injected for testing.
    """

    def __init__(
        self,
        config: Optional[RelayConfig] = None,
        *,
        driver: Optional[OutputDriver] = None,
        mqtt_client: Optional[MQTTClient] = None,
    ) -> None:
        self._config = config or load_config()
        self._driver = driver
        self._mqtt_client = mqtt_client
        self._bank: Optional[OutputBank] = None
        self._dispatcher: Optional[CommandDispatcher] = None
        self._health = HealthReporter()
        self._health_server: Optional[HealthServer] = None
        self._shutdown_event: Optional[asyncio.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._state = AgentState.COLD_START
        self._state_detail: Optional[str] = None
        self._stopping = False
        self._stopped = False

    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def bank(self) -> Optional[OutputBank]:
        return self._bank

    @property
    def dispatcher(self) -> Optional[CommandDispatcher]:
        return self._dispatcher

    @property
    def health(self) -> HealthReporter:
        return self._health

    async def run(self) -> int:
        """Run the daemon until shutdown is requested; return an exit code."""

        self._loop = asyncio.get_running_loop()
        self._shutdown_event = asyncio.Event()

        LOGGER.info("%s starting with config: %s", constants.APP_NAME, self._config.path)
        started = await self._start_services()
        if not started:
            LOGGER.error("Service startup failed")
            await self._stop_services()
            return 1

        try:
            await self._idle_loop()
        except asyncio.CancelledError:
            LOGGER.info("%s received shutdown signal", constants.APP_NAME)
            raise
        finally:
            await self._stop_services()
        return 0

    def request_shutdown(self) -> None:
        """Ask a running daemon to stop (thread-safe)."""

        loop = self._loop
        event = self._shutdown_event
        if loop is None or event is None:
            return
        loop.call_soon_threadsafe(event.set)

    @classmethod
    def start(cls, config: Optional[RelayConfig] = None) -> int:
        instance = cls(config=config)
        configure_logging(
            instance._config.logging.level,
            log_path=instance._config.logging.path,
            log_network=instance._config.logging.log_network,
        )
        try:
            return asyncio.run(instance.run())
        except KeyboardInterrupt:
            LOGGER.info("%s received shutdown signal", constants.APP_NAME)
            return 0

    async def _idle_loop(self) -> None:
        LOGGER.info("%s active; awaiting shutdown signal", constants.APP_NAME)
        assert self._shutdown_event is not None
        await self._shutdown_event.wait()

    async def _transition_state(
        self, state: AgentState, *, detail: Optional[str] = None
    ) -> None:
        if state == self._state and detail == self._state_detail:
            return

        previous = self._state
        self._state = state
        self._state_detail = detail

        message_detail = detail or state.value
        LOGGER.info(
            "Agent state transition %s -> %s (%s)",
            previous.value,
            state.value,
            message_detail,
        )
        await self._health.set_agent_state(
            state.value,
            healthy=state == AgentState.ACTIVE,
            detail=message_detail,
        )

    def _schedule_state_transition(
        self, state: AgentState, *, detail: Optional[str] = None
    ) -> None:
        loop = self._loop
        if loop is None:
            return

        async def _runner() -> None:
            await self._transition_state(state, detail=detail)

        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            current_loop = None

        if current_loop is loop:
            loop.create_task(_runner())
        else:
            asyncio.run_coroutine_threadsafe(_runner(), loop)

    def _schedule_health_update(
        self, name: str, healthy: bool, detail: Optional[str]
    ) -> None:
        loop = self._loop
        if loop is None:
            return

        async def _runner() -> None:
            await self._health.update(name, healthy, detail)

        loop.call_soon_threadsafe(lambda: loop.create_task(_runner()))

    def _command_health_detail(self) -> Optional[str]:
        dispatcher = self._dispatcher
        if dispatcher is None:
            return None
        return (
            f"accepted={dispatcher.accepted_count} rejected={dispatcher.rejected_count}"
        )

    async def _start_services(self) -> bool:
        await self._transition_state(AgentState.COLD_START, detail="initialising")

        self._stopping = False
        await self._health.update("gpio", False, "initialising")
        await self._health.update("mqtt", False, "awaiting gpio")
        await self._health.update("commands", False, "awaiting gpio")

        if not await self._start_outputs():
            await self._transition_state(AgentState.DEGRADED, detail="gpio unavailable")
            return False

        client = self._mqtt_client
        if client is None:
            client = MQTTClient(
                self._config.mqtt,
                client_id=_build_client_id(self._config),
                resilience=self._config.resilience,
            )
            self._mqtt_client = client

        client.set_message_handler(self._handle_message)
        client.add_subscription(self._config.mqtt.topic, qos=self._config.mqtt.qos)
        client.register_disconnect_handler(self._on_mqtt_disconnect)
        client.register_connect_handler(self._on_mqtt_connect)

        await self._transition_state(
            AgentState.AWAITING_MQTT, detail="connecting to mqtt broker"
        )

        try:
            await client.connect()
        except MQTTConnectionError as exc:
            LOGGER.error("MQTT connection failed: %s", exc)
            await self._health.update("mqtt", False, str(exc))
            await self._transition_state(AgentState.DEGRADED, detail="mqtt unavailable")
            return False

        await self._health.update("mqtt", True, None)
        await self._health.update("commands", True, self._command_health_detail())
        LOGGER.info("Listening for relay commands on %s", self._config.mqtt.topic)

        await self._start_health_server()
        await self._transition_state(AgentState.ACTIVE, detail="runtime ready")
        return True

    async def _start_outputs(self) -> bool:
        gpio = self._config.gpio
        driver = self._driver
        try:
            if driver is None:
                if gpio.simulate:
                    driver = GpioZeroDriver.simulated(gpio.pins)
                else:
                    driver = GpioZeroDriver(gpio.pins)
                self._driver = driver
            bank = OutputBank(driver, polarity=gpio.polarity)
        except GpioSetupError as exc:
            LOGGER.error("GPIO setup failed: %s", exc)
            # Release the lines claimed before the failure.
            if driver is not None:
                driver.close()
            await self._health.update("gpio", False, str(exc))
            return False

        self._bank = bank
        self._dispatcher = CommandDispatcher(bank)
        self._health.set_relay_snapshot(bank.states)
        await self._health.update(
            "gpio", True, f"{bank.channel_count} lines {bank.polarity.value}"
        )
        return True

    async def _start_health_server(self) -> None:
        resilience = self._config.resilience
        if not resilience.health_enabled or resilience.health_port <= 0:
            return

        server = HealthServer(
            self._health,
            resilience.health_host,
            resilience.health_port,
        )
        try:
            await server.start()
        except OSError as exc:
            LOGGER.error("Failed to start health endpoint: %s", exc)
            await self._health.update("health-endpoint", False, str(exc))
        else:
            self._health_server = server
            await self._health.update("health-endpoint", True, None)

    async def _stop_health_server(self) -> None:
        if self._health_server is None:
            return
        await self._health_server.stop()
        self._health_server = None
        await self._health.update("health-endpoint", False, "shutdown")

    # -------------------------------------------------------------------------
    # MQTT callbacks
    # -------------------------------------------------------------------------

    def _handle_message(self, topic: str, payload: bytes) -> None:
        """Dispatch a frame; runs on the paho-mqtt network thread."""

        dispatcher = self._dispatcher
        if dispatcher is None or self._stopping:
            return
        dispatcher.dispatch(payload)
        self._schedule_health_update("commands", True, self._command_health_detail())

    def _on_mqtt_disconnect(self, rc: int) -> None:
        if self._stopping:
            return
        self._schedule_health_update("mqtt", False, f"disconnected (rc={rc})")
        self._schedule_state_transition(
            AgentState.DEGRADED, detail=f"mqtt disconnected (rc={rc})"
        )

    def _on_mqtt_connect(self, rc: int) -> None:
        if self._stopping:
            return
        self._schedule_health_update("mqtt", True, None)
        if self._state == AgentState.DEGRADED:
            self._schedule_state_transition(AgentState.ACTIVE, detail="mqtt reconnected")

    async def _stop_services(self) -> None:
        if self._stopped:
            return
        self._stopped = True

        await self._transition_state(AgentState.STOPPING, detail="shutdown requested")
        self._stopping = True

        await self._stop_health_server()

        if self._mqtt_client is not None:
            await self._mqtt_client.disconnect()
            self._mqtt_client = None
            await self._health.update("mqtt", False, "shutdown")

        # Output lines keep their last level; there is no reset on exit.
        await self._health.update("commands", False, "shutdown")

        if self._shutdown_event is not None:
            self._shutdown_event.set()


def _build_client_id(config: RelayConfig) -> str:
    if config.mqtt.client_id:
        return config.mqtt.client_id
    return f"{constants.APP_NAME}-{os.getpid()}"
