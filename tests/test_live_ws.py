"""Tests for the live WebSocket channel."""

import threading
import time


def test_bootstrap_on_connect(client):
    client.post("/api/data", json={"deviceId": "D1", "voltage": 220.5})

    with client.websocket_connect("/ws") as ws:
        active = ws.receive_json()
        snapshot = ws.receive_json()

    assert active == {
        "event": "activeDevices",
        "data": [{"deviceId": "D1", "deviceType": "VAULTER"}],
    }
    assert snapshot["event"] == "sensorData"
    assert snapshot["data"]["deviceId"] == "D1"
    assert snapshot["data"]["voltage"] == 220.5


def test_readings_broadcast_to_viewer(client):
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_json() == {"event": "activeDevices", "data": []}

        client.post("/api/data", json={"deviceId": "D1", "voltage": 221})
        message = ws.receive_json()

    assert message["event"] == "sensorData"
    assert message["data"]["deviceId"] == "D1"
    assert message["data"]["voltage"] == 221.0


def test_viewer_command_routed(client, admin_headers):
    client.post("/api/data", json={"deviceId": "D1", "voltage": 220})

    with client.websocket_connect("/ws") as ws:
        ws.receive_json()  # activeDevices
        ws.receive_json()  # sensorData snapshot

        ws.send_text("not json")
        ws.send_json({"event": "sendCommand", "data": {"deviceId": "ghost", "command": "on"}})
        ws.send_json({"event": "sendCommand", "data": {"deviceId": "D1", "command": "on"}})
        message = ws.receive_json()

    assert message == {"event": "command", "data": {"deviceId": "D1", "command": "on"}}
    history = client.get("/api/admin/commands", headers=admin_headers).json()
    assert history["total"] == 1
    assert history["commands"][0]["source"] == "websocket"


def test_connect_while_registry_busy_keeps_server_responsive(client):
    """A viewer waiting on the registry lock must not stall other requests."""
    lock = client.app.state.gateway.registry.lock
    held, release = threading.Event(), threading.Event()

    def hold_lock():
        with lock:
            held.set()
            release.wait(timeout=5)

    worker = threading.Thread(target=hold_lock)
    worker.start()
    held.wait(timeout=5)
    try:
        with client.websocket_connect("/ws") as ws:
            started = time.monotonic()
            resp = client.get("/api/readings")
            elapsed = time.monotonic() - started

            assert resp.status_code == 200
            assert elapsed < 2

            release.set()
            assert ws.receive_json() == {"event": "activeDevices", "data": []}
    finally:
        release.set()
        worker.join()
