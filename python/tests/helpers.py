"""Test helpers for API tests.

Provides:
- Account registration and login through the HTTP API
- Header generation for bearer and share-link (HTTP Basic) authentication
"""

import base64
from itertools import count

from fastapi.testclient import TestClient

DEFAULT_PASSWORD = "correct horse battery"

_sequence = count(1)


def auth_headers(access_token: str) -> dict[str, str]:
    """Generate Authorization headers for a bearer access token."""
    return {"Authorization": f"Bearer {access_token}"}


def share_headers(slug: str, password: str = "") -> dict[str, str]:
    """Generate HTTP Basic headers carrying a share-link slug and password."""
    encoded = base64.b64encode(f"{slug}:{password}".encode()).decode("ascii")
    return {"Authorization": f"Basic {encoded}"}


def register_and_login(
    client: TestClient, username: str | None = None, password: str = DEFAULT_PASSWORD
) -> dict:
    """Register a user through the API and log in.

    Returns:
        Dict with ``user`` (the registered account), ``tokens`` (the issued
        pair) and ``headers`` (bearer headers for the access token).
    """
    username = username or f"api_user_{next(_sequence):05d}"
    response = client.post(
        "/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": password},
    )
    assert response.status_code == 201, response.text
    user = response.json()["data"]

    response = client.post("/auth/login", json={"login": username, "password": password})
    assert response.status_code == 200, response.text
    tokens = response.json()["data"]

    return {
        "user": user,
        "tokens": tokens,
        "headers": auth_headers(tokens["access_token"]["token"]),
    }
