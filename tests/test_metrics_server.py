"""Tests for the metrics HTTP app and background server."""

import httpx
import pytest

from regress.metrics.aggregator import MetricsAggregator
from regress.server.app import create_app
from regress.server.runner import MetricsServer


@pytest.fixture
async def client(metrics: MetricsAggregator):
    metrics.initialize()
    transport = httpx.ASGITransport(app=create_app(metrics))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestRoutes:
    """Tests for the metrics routes."""

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["uptime"] >= 0

    async def test_ready(self, client):
        response = await client.get("/ready")
        assert response.json() == {"status": "ready"}

    async def test_metrics_exposition(self, client, metrics):
        metrics.record_test_completion("Login", 2, is_failure=False)

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert metrics.registry.get_sample_value(
            "regression_test_total",
            {
                "scenario": "Login",
                "status": "success",
                "environment": "test",
                "browser": "chrome",
            },
        ) == 1
        lines = [
            line
            for line in response.text.splitlines()
            if line.startswith("regression_test_total{")
        ]
        assert any('scenario="Login"' in line for line in lines)

    async def test_summary(self, client, metrics):
        for name in ("A", "B", "C"):
            metrics.record_test_completion(name, 1, is_failure=False)
        metrics.record_test_completion("D", 1, is_failure=True)

        response = await client.get("/test-summary")

        assert response.status_code == 200
        body = response.json()
        assert body["totalTests"] == 4
        assert body["failedTests"] == 1
        assert body["successRate"] == 75.0
        assert body["environment"] == "test"

    async def test_summary_failure_returns_500(self, client, metrics, monkeypatch):
        def broken():
            raise RuntimeError("registry unavailable")

        monkeypatch.setattr(metrics, "get_test_summary", broken)

        response = await client.get("/test-summary")

        assert response.status_code == 500
        assert response.json() == {"error": "registry unavailable"}


class TestMetricsServer:
    """Tests for MetricsServer lifecycle."""

    async def test_stop_without_start_is_noop(self, metrics):
        server = MetricsServer(create_app(metrics), host="127.0.0.1", port=0)
        await server.stop()
        assert not server.running

    async def test_start_and_stop(self, metrics):
        server = MetricsServer(create_app(metrics), host="127.0.0.1", port=0)

        await server.start()
        assert server.running
        assert server.bound_port

        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"http://127.0.0.1:{server.bound_port}/health", timeout=2
            )
        assert response.json()["status"] == "healthy"

        await server.stop()
        assert not server.running
        assert server.bound_port is None
