"""
Tests for the relay HTTP surface.

Validates liveness probes, the ``/logs`` view, the production gate on
``DELETE /logs`` and the JSON 404 handler.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from ca_common.config import Settings

from relay.main import create_app


def _client(settings: Settings) -> TestClient:
    return TestClient(create_app(settings))


@pytest.fixture()
def prod_client() -> Iterator[TestClient]:
    with _client(Settings(production=True)) as c:
        yield c


@pytest.fixture()
def prod_admin_client() -> Iterator[TestClient]:
    with _client(Settings(production=True, admin_token="s3cret")) as c:
        yield c


def _seed(client: TestClient) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()
        ws.send_text('{"event": "alert", "data": {"message": "m", "keyword": "k", "time": "t"}}')
        ws.receive_json()


class TestProbes:

    def test_root(self, client: TestClient) -> None:
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    def test_ping(self, client: TestClient) -> None:
        resp = client.get("/ping")
        assert resp.status_code == 200
        assert resp.text == "pong"

    def test_health_reports_counts(self, client: TestClient) -> None:
        _seed(client)
        assert client.get("/health").json() == {"status": "ok", "connections": 0, "stored": 1}

    def test_metrics_exposed(self, client: TestClient) -> None:
        resp = client.get("/metrics/")
        assert resp.status_code == 200
        assert "relay_alerts_accepted_total" in resp.text


class TestLogs:

    def test_empty(self, client: TestClient) -> None:
        assert client.get("/logs").json() == {"count": 0, "logs": []}

    def test_clear_in_dev_mode(self, client: TestClient) -> None:
        _seed(client)
        resp = client.delete("/logs")
        assert resp.status_code == 200
        assert resp.json() == {"ok": True}
        assert client.get("/logs").json()["count"] == 0

    def test_clear_not_mounted_in_production(self, prod_client: TestClient) -> None:
        _seed(prod_client)
        resp = prod_client.delete("/logs")
        assert resp.status_code == 405
        assert prod_client.get("/logs").json()["count"] == 1

    def test_clear_requires_token_in_production(self, prod_admin_client: TestClient) -> None:
        _seed(prod_admin_client)
        assert prod_admin_client.delete("/logs").status_code == 403
        assert prod_admin_client.delete("/logs", headers={"X-Admin-Token": "wrong"}).status_code == 403
        assert prod_admin_client.get("/logs").json()["count"] == 1

        resp = prod_admin_client.delete("/logs", headers={"X-Admin-Token": "s3cret"})
        assert resp.status_code == 200
        assert prod_admin_client.get("/logs").json()["count"] == 0


class TestNotFound:

    def test_unknown_path(self, client: TestClient) -> None:
        resp = client.get("/nope")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not Found", "url": "/nope"}
