"""Health and relay status reporting for the daemon."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from aiohttp import web

from .core import RelayState

LOGGER = logging.getLogger(__name__)

RelaySnapshot = Callable[[], Sequence[RelayState]]


def _timestamp(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


@dataclass(slots=True)
class ComponentHealth:
    name: str
    healthy: bool
    detail: Optional[str] = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "healthy": self.healthy,
            "detail": self.detail,
            "updatedAt": _timestamp(self.updated_at),
        }


class HealthReporter:
    """Collects component health, the agent state and the relay levels.

    Components are named parts of the daemon (``gpio``, ``mqtt``,
    ``commands``). The overall status is ``ok`` only while every
    component and the agent state are healthy.
    """

    def __init__(self, relay_snapshot: Optional[RelaySnapshot] = None) -> None:
        self._components: Dict[str, ComponentHealth] = {}
        self._agent: Optional[ComponentHealth] = None
        self._lock = asyncio.Lock()
        self._relay_snapshot = relay_snapshot

    def set_relay_snapshot(self, provider: Optional[RelaySnapshot]) -> None:
        self._relay_snapshot = provider

    async def update(
        self, name: str, healthy: bool, detail: Optional[str] = None
    ) -> None:
        async with self._lock:
            self._components[name] = ComponentHealth(name, healthy, detail)

    async def set_agent_state(
        self, state: str, *, healthy: bool, detail: Optional[str] = None
    ) -> None:
        async with self._lock:
            self._agent = ComponentHealth(
                "agent", healthy, detail if detail is not None else state
            )

    def relays(self) -> List[Dict[str, object]]:
        """Return the relay states as ``{"channel", "state"}`` entries.

        Channels are numbered from 1, as on the wire.
        """

        if self._relay_snapshot is None:
            return []
        return [
            {"channel": index + 1, "state": state.value}
            for index, state in enumerate(self._relay_snapshot())
        ]

    async def snapshot(self) -> Dict[str, object]:
        async with self._lock:
            components = [item.to_payload() for item in self._components.values()]
            agent = self._agent

        healthy = all(item["healthy"] for item in components)
        if agent is not None:
            healthy = healthy and agent.healthy

        payload: Dict[str, object] = {
            "status": "ok" if healthy else "degraded",
            "components": components,
        }
        if agent is not None:
            payload["agentState"] = {
                "state": agent.detail,
                "healthy": agent.healthy,
                "updatedAt": _timestamp(agent.updated_at),
            }
        if self._relay_snapshot is not None:
            payload["relays"] = self.relays()
        return payload


class HealthServer:
    """Local HTTP endpoint serving ``/healthz`` and ``/relays``."""

    def __init__(self, reporter: HealthReporter, host: str, port: int) -> None:
        self._reporter = reporter
        self._host = host
        self._port = port
        self._runner: Optional[web.AppRunner] = None

    async def start(self) -> None:
        app = web.Application()
        app.add_routes(
            [
                web.get("/healthz", self._handle_health),
                web.get("/relays", self._handle_relays),
            ]
        )

        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        try:
            await web.TCPSite(runner, self._host, self._port).start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner
        LOGGER.info(
            "Health endpoint listening on http://%s:%s/healthz", self._host, self._port
        )

    async def stop(self) -> None:
        runner, self._runner = self._runner, None
        if runner is not None:
            await runner.cleanup()

    async def _handle_health(self, request: web.Request) -> web.Response:
        snapshot = await self._reporter.snapshot()
        return web.json_response(
            snapshot, status=200 if snapshot["status"] == "ok" else 503
        )

    async def _handle_relays(self, request: web.Request) -> web.Response:
        return web.json_response(self._reporter.relays())
