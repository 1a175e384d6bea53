"""Unit tests for main FastAPI application configuration."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

import main
from audit.dependencies import get_audit_logger
from main import app


class TestApplication:
    def test_health(self):
        client = TestClient(app)

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_title(self):
        assert app.title == "Helpdesk API"

    def test_routes_registered(self):
        paths = {route.path for route in app.routes}

        assert "/tickets" in paths
        assert "/tenants/{tenant_id}/tickets" in paths
        assert "/audit-logs" in paths

    def test_unauthenticated_request_is_rejected(self):
        """No auth layer populates the session, so every route fails closed."""
        client = TestClient(app)

        response = client.get("/tickets")

        assert response.status_code == 401


class TestLifespan:
    def test_shutdown_without_requests_builds_no_audit_logger(self):
        get_audit_logger.cache_clear()

        with TestClient(app) as client:
            client.get("/health")

        assert get_audit_logger.cache_info().currsize == 0

    def test_shutdown_drains_existing_audit_logger(self, monkeypatch):
        logger = MagicMock()
        logger.drain = AsyncMock()
        factory = MagicMock(return_value=logger)
        factory.cache_info.return_value.currsize = 1
        monkeypatch.setattr(main, "get_audit_logger", factory)

        with TestClient(app):
            pass

        logger.drain.assert_awaited_once()
