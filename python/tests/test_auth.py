"""Tests for the authentication middleware.

The middleware is driven by a stub token validator so header parsing and
error mapping are checked without minting real tokens.
"""

from typing import Annotated
from uuid import uuid4

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from galera.app import create_app
from galera.auth.context import Actor
from galera.auth.middleware import get_actor, get_optional_actor
from galera.errors import ExpiredError, RevokedError
from galera.responses import success_response
from tests.helpers import auth_headers, register_and_login, share_headers

USER_EXTERNAL_ID = uuid4()


def stub_validator(token: str) -> Actor:
    if token == "good-token":
        return Actor(user_id=1, user_external_id=USER_EXTERNAL_ID)
    if token == "expired-token":
        raise ExpiredError()
    raise RevokedError()


@pytest.fixture
def auth_client(session_factory, blob_store, metadata_extractor):
    """App with the stub validator and two whoami routes reporting the actor."""
    app = create_app(
        session_factory=session_factory,
        blob_store=blob_store,
        metadata_extractor=metadata_extractor,
        token_validator=stub_validator,
    )

    @app.get("/whoami")
    def whoami(actor: Annotated[Actor, Depends(get_optional_actor)]) -> dict:
        share = actor.share
        return success_response(
            {
                "user_id": actor.user_id,
                "share_slug": share.slug if share else None,
                "share_password": share.password if share else None,
            }
        )

    @app.get("/whoami/private")
    def private_whoami(actor: Annotated[Actor, Depends(get_actor)]) -> dict:
        return success_response({"user_external_id": str(actor.user_external_id)})

    return TestClient(app)


class TestAuthBoundary:
    def test_no_header_is_anonymous(self, auth_client):
        response = auth_client.get("/whoami")

        assert response.status_code == 200
        assert response.json()["data"] == {
            "user_id": None,
            "share_slug": None,
            "share_password": None,
        }

    def test_no_header_on_private_route(self, auth_client):
        response = auth_client.get("/whoami/private")

        assert response.status_code == 401
        data = response.json()
        assert data["error"]["code"] == "E_UNAUTHENTICATED"
        assert "authentication" in data["error"]["message"].lower()

    def test_valid_bearer(self, auth_client):
        response = auth_client.get("/whoami/private", headers=auth_headers("good-token"))

        assert response.status_code == 200
        assert response.json()["data"]["user_external_id"] == str(USER_EXTERNAL_ID)

    def test_bearer_scheme_is_case_insensitive(self, auth_client):
        response = auth_client.get("/whoami", headers={"Authorization": "bearer good-token"})

        assert response.json()["data"]["user_id"] == 1

    @pytest.mark.parametrize(
        ("token", "code"),
        [("expired-token", "E_TOKEN_EXPIRED"), ("revoked-token", "E_TOKEN_REVOKED")],
    )
    def test_rejected_bearer(self, auth_client, token: str, code: str):
        # Even routes that allow anonymous callers reject a bad token
        response = auth_client.get("/whoami", headers=auth_headers(token))

        assert response.status_code == 401
        assert response.json()["error"]["code"] == code

    def test_empty_bearer_token(self, auth_client):
        response = auth_client.get("/whoami", headers={"Authorization": "Bearer "})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "E_UNAUTHENTICATED"

    def test_unknown_scheme(self, auth_client):
        response = auth_client.get("/whoami", headers={"Authorization": "Digest abc"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "E_UNAUTHENTICATED"

    def test_health_skips_auth(self, auth_client):
        response = auth_client.get("/health", headers={"Authorization": "Digest abc"})

        assert response.status_code == 200


class TestShareCredential:
    def test_basic_carries_slug_and_password(self, auth_client):
        response = auth_client.get("/whoami", headers=share_headers("slug-1", "pa:ss"))

        assert response.status_code == 200
        # Only the first colon separates slug from password
        assert response.json()["data"] == {
            "user_id": None,
            "share_slug": "slug-1",
            "share_password": "pa:ss",
        }

    def test_empty_password_is_none(self, auth_client):
        response = auth_client.get("/whoami", headers=share_headers("slug-1"))

        assert response.json()["data"]["share_password"] is None

    def test_share_credential_is_not_a_login(self, auth_client):
        response = auth_client.get("/whoami/private", headers=share_headers("slug-1", "x"))

        assert response.status_code == 401

    @pytest.mark.parametrize("credentials", ["not base64!", "bm8tY29sb24=", "OnNlY3JldA=="])
    def test_malformed_basic(self, auth_client, credentials: str):
        # "no-colon" and ":secret" decode fine but name no slug
        response = auth_client.get("/whoami", headers={"Authorization": f"Basic {credentials}"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "E_UNAUTHENTICATED"


class TestTokenValidator:
    """The default validator resolves real access tokens through the database."""

    def test_real_access_token_authenticates(self, client: TestClient):
        account = register_and_login(client)

        response = client.get("/me", headers=account["headers"])

        assert response.status_code == 200
        assert response.json()["data"]["id"] == account["user"]["id"]
