from unittest.mock import patch

import pytest

pytestmark = pytest.mark.integration


class TestHealthCheck:
    def test_health_check_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "services" in data

    def test_health_check_reports_database_status(self, client):
        response = client.get("/health")
        data = response.json()
        assert data["services"]["database"]["status"] == "up"
        assert "response_time_ms" in data["services"]["database"]

    def test_health_check_reports_cache_status(self, client):
        response = client.get("/health")
        data = response.json()
        assert data["services"]["cache"]["status"] == "up"
        assert "response_time_ms" in data["services"]["cache"]

    def test_health_check_reports_outbox_backlog(self, client, make_order):
        make_order()
        response = client.get("/health")
        data = response.json()
        assert data["services"]["outbox"]["status"] == "up"
        assert data["services"]["outbox"]["pending_events"] == 1

    def test_cache_failure_does_not_fail_health(self, client):
        with patch("modules.core.views._check_cache", side_effect=ConnectionError("redis down")):
            response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["services"]["cache"]["status"] == "down"
