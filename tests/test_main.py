"""
Service Wiring Tests
====================

Component factories and the HTTP endpoints.
"""

import socket
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

from medscope_capture import main
from medscope_capture.config import Settings
from medscope_capture.inference import HttpInferenceClient, MockInferenceClient
from medscope_capture.main import (
    FAILURE_STATUS_CODES,
    create_coordinator,
    create_inference_client,
    create_listener,
)
from medscope_capture.models.capture import FailureKind


class TestFactories:
    """Tests for the component factories."""

    def test_mock_backend(self):
        client = create_inference_client(Settings())

        assert isinstance(client, MockInferenceClient)

    def test_http_backend_requires_api_key(self):
        settings = Settings.model_validate({"inference": {"backend": "http"}})

        with pytest.raises(RuntimeError):
            create_inference_client(settings)

    def test_http_backend(self):
        settings = Settings.model_validate(
            {"inference": {"backend": "http", "api_key": "k"}}
        )

        client = create_inference_client(settings)

        assert isinstance(client, HttpInferenceClient)
        assert client.url == "https://serverless.roboflow.com/pharyngitis-dataset/3"

    def test_unknown_backend(self):
        settings = Settings.model_validate({"inference": {"backend": "local"}})

        with pytest.raises(ValueError):
            create_inference_client(settings)

    def test_coordinator_uses_protocol_settings(self):
        settings = Settings.model_validate(
            {
                "device": {"port": 0, "receive_timeout_seconds": None},
                "protocol": {"resolution_code": 0x07, "settle_delay_seconds": 0.1},
            }
        )

        listener = create_listener(settings)
        coordinator = create_coordinator(settings, listener)

        assert listener.max_expected_size == 320 * 320 * 2
        assert coordinator.resolution_code == 0x07
        assert coordinator.settle_delay == 0.1
        assert coordinator.receive_timeout is None

    def test_every_failure_kind_has_status_code(self):
        assert set(FAILURE_STATUS_CODES) == set(FailureKind)


@pytest.fixture
def service(monkeypatch):
    """TestClient with the lifespan running and the device listener on a free port."""
    monkeypatch.setattr(main.settings.device, "host", "127.0.0.1")
    monkeypatch.setattr(main.settings.device, "port", 0)
    monkeypatch.setattr(main.settings.device, "connect_timeout_seconds", 0.2)
    monkeypatch.setattr(main.settings.device, "receive_timeout_seconds", 2.0)
    monkeypatch.setattr(main.settings.protocol, "settle_delay_seconds", 0.5)
    monkeypatch.setattr(main.settings.inference, "backend", "mock")

    with TestClient(main.app) as client:
        yield client


def connect_device(client):
    port = client.app.state.listener.bound_port
    sock = socket.create_connection(("127.0.0.1", port), timeout=3.0)

    deadline = time.monotonic() + 2.0
    while client.get("/ready").status_code != 200:
        if time.monotonic() > deadline:
            raise AssertionError("device never became ready")
        time.sleep(0.02)
    return sock


def recv_exact(sock, size):
    data = b""
    while len(data) < size:
        chunk = sock.recv(size - len(data))
        if not chunk:
            raise AssertionError("socket closed")
        data += chunk
    return data


class TestEndpointsWithoutDevice:
    """HTTP surface while no camera module is connected."""

    def test_health(self, service):
        response = service.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready_is_503(self, service):
        response = service.get("/ready")

        assert response.status_code == 503
        assert response.json()["device_connected"] is False

    def test_status_fields(self, service):
        body = service.get("/status").json()

        assert body["is_running"] is True
        assert body["address"] == "127.0.0.1"
        assert body["port"] == service.app.state.listener.bound_port
        assert body["clients"] == 0

    def test_last_capture_404_before_first_capture(self, service):
        assert service.get("/capture/last").status_code == 404

    def test_capture_without_device_is_503(self, service):
        response = service.post("/capture")

        assert response.status_code == 503
        assert response.json()["failure"]["kind"] == "CONNECTION_ERROR"
        assert service.get("/capture/last").json()["ok"] is False

    def test_metrics_count_failures(self, service):
        service.post("/capture")

        body = service.get("/metrics").json()

        assert body["coordinator"]["captures_failed"] == 1
        assert body["coordinator"]["failures_by_kind"] == {"CONNECTION_ERROR": 1}
        assert body["inference"]["backend"] == "mock"


class TestEndpointsWithDevice:
    """HTTP surface with a camera module dialled in over loopback."""

    def test_ready_and_status_report_device(self, service):
        sock = connect_device(service)
        try:
            ready = service.get("/ready")
            status = service.get("/status").json()
        finally:
            sock.close()

        assert ready.status_code == 200
        assert ready.json()["capture_status"] == "IDLE"
        assert status["clients"] == 1

    def test_capture_busy_then_success(self, service):
        frame_bytes = b"\xa5\x5a\x00\x01\x02\x03\x04\x05" + b"\xff\xd8jpeg\xff\xd9" + b"\xff\xbb"
        sock = connect_device(service)
        try:
            with ThreadPoolExecutor(max_workers=1) as pool:
                first = pool.submit(service.post, "/capture")

                assert recv_exact(sock, 2) == b"\x01\x18"
                busy = service.post("/capture")

                assert recv_exact(sock, 1) == b"\x10"
                sock.sendall(frame_bytes)
                done = first.result(timeout=5.0)
            last = service.get("/capture/last")
        finally:
            sock.close()

        assert busy.status_code == 409
        assert busy.json()["failure"]["kind"] == "BUSY"
        assert done.status_code == 200
        assert done.json()["frame"]["payload_size"] == 8
        assert done.json()["diagnosis"] is not None
        assert last.status_code == 200
        assert last.json() == done.json()

