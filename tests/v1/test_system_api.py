# tests/v1/test_system_api.py
"""Tests for the development reset endpoint."""

from fastapi import status
from fastapi.testclient import TestClient

from goongpt_api.core.settings import settings
from goongpt_api.services.container import ServiceContainer


def test_reset_clears_storage(
    client: TestClient, services: ServiceContainer, registered, bearer: dict[str, str]
) -> None:
    response = client.post("/api/v1/dev/reset")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["success"] is True
    assert services.auth.users.get_by_id(registered["user"].id) is None
    assert client.get("/api/v1/session", headers=bearer).json()["authenticated"] is False


def test_reset_forbidden_in_production(client: TestClient, registered, monkeypatch) -> None:
    monkeypatch.setattr(settings, "environment", "production")

    response = client.post("/api/v1/dev/reset")

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json() == {"error": "Reset is only available in development"}
