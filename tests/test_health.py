# tests/test_health.py
from fastapi import status
from fastapi.testclient import TestClient


def test_health_reports_service(client: TestClient) -> None:
    """Health check identifies the service."""
    r = client.get("/health")
    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"status": "ok", "service": "nyx-server"}


def test_root_responds(client: TestClient) -> None:
    r = client.get("/")
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["websocket"] == "/ws"
