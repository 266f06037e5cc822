# tests/v1/test_tokens_api.py
"""Tests for the token earning endpoints."""

from fastapi import status
from fastapi.testclient import TestClient


class TestTokens:
    def test_earn_and_read(self, client: TestClient, bearer: dict[str, str]) -> None:
        earned = client.post("/api/v1/tokens/earn", json={"amount": 25, "action": "Image"}, headers=bearer)

        assert earned.status_code == status.HTTP_200_OK
        assert earned.json()["tokens_earned"] == 25
        assert earned.json()["daily_remaining"] == 75

        data = client.get("/api/v1/tokens", headers=bearer).json()
        assert data["success"] is True
        assert data["token_balance"] == 25
        assert data["daily_limit"] == 100
        assert data["transactions"][0]["action"] == "Image"

    def test_amount_bounds(self, client: TestClient, bearer: dict[str, str]) -> None:
        too_big = client.post("/api/v1/tokens/earn", json={"amount": 51}, headers=bearer)
        too_small = client.post("/api/v1/tokens/earn", json={"amount": 0}, headers=bearer)

        assert too_big.status_code == status.HTTP_400_BAD_REQUEST
        assert too_small.status_code == status.HTTP_400_BAD_REQUEST

    def test_daily_limit(self, client: TestClient, bearer: dict[str, str]) -> None:
        for _ in range(2):
            client.post("/api/v1/tokens/earn", json={"amount": 50}, headers=bearer)

        response = client.post("/api/v1/tokens/earn", json={"amount": 1}, headers=bearer)

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert "Daily token limit reached" in response.json()["error"]

    def test_requires_authentication(self, client: TestClient) -> None:
        assert client.get("/api/v1/tokens").status_code == status.HTTP_401_UNAUTHORIZED
        assert client.post("/api/v1/tokens/earn", json={"amount": 1}).status_code == status.HTTP_401_UNAUTHORIZED
