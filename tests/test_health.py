import aiohttp
import pytest

from pizero_relay.core import RelayState
from pizero_relay.health import HealthReporter, HealthServer


@pytest.mark.asyncio
async def test_health_reporter_snapshot():
    reporter = HealthReporter()

    await reporter.update("mqtt", True)
    await reporter.update("gpio", False, "GPIO17 busy")

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "degraded"
    component_list = snapshot.get("components", [])
    assert isinstance(component_list, list)
    components = {item["name"]: item for item in component_list}
    assert components["mqtt"]["healthy"] is True
    assert components["gpio"]["healthy"] is False
    assert components["gpio"]["detail"] == "GPIO17 busy"
    assert "relays" not in snapshot


@pytest.mark.asyncio
async def test_health_reporter_agent_state_affects_status():
    reporter = HealthReporter()

    await reporter.update("mqtt", True)
    await reporter.set_agent_state("awaiting_mqtt", healthy=False)

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "degraded"
    agent = snapshot.get("agentState")
    assert agent is not None
    assert agent["state"] == "awaiting_mqtt"
    assert agent["healthy"] is False
    assert all(item["name"] != "agent" for item in snapshot["components"])


@pytest.mark.asyncio
async def test_health_reporter_numbers_relays_from_one():
    reporter = HealthReporter(
        relay_snapshot=lambda: [RelayState.ENERGIZED, RelayState.DE_ENERGIZED]
    )

    await reporter.update("gpio", True)

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "ok"
    assert snapshot["relays"] == [
        {"channel": 1, "state": "energized"},
        {"channel": 2, "state": "de_energized"},
    ]


@pytest.mark.asyncio
async def test_health_server_serves_snapshot(unused_tcp_port):
    reporter = HealthReporter(relay_snapshot=lambda: [RelayState.DE_ENERGIZED])
    await reporter.update("mqtt", True)

    host = "127.0.0.1"
    port = unused_tcp_port
    server = HealthServer(reporter, host, port)
    await server.start()

    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(f"http://{host}:{port}/healthz") as response:
                payload = await response.json()
                assert response.status == 200
                assert payload["status"] == "ok"

            async with session.get(f"http://{host}:{port}/relays") as response:
                payload = await response.json()
                assert payload == [{"channel": 1, "state": "de_energized"}]

            await reporter.update("mqtt", False, "disconnected (rc=7)")

            async with session.get(f"http://{host}:{port}/healthz") as response:
                assert response.status == 503
    finally:
        await server.stop()
