# tests/helpers.py

from __future__ import annotations

from fastapi.testclient import TestClient


def register_and_login(client: TestClient, username: str, email: str, password: str = "pw123456") -> dict:
    """Register through the API and return an Authorization header for the new user."""
    resp = client.post("/api/auth/register", json={"username": username, "email": email, "password": password})
    assert resp.status_code == 201, resp.text
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}
