"""Tests for structured logging processors and request context."""

from galera.logging import (
    REDACTED,
    add_request_context,
    clear_request_context,
    get_request_id,
    redact_secrets,
    set_request_context,
)


class TestRedactSecrets:
    def test_secret_keys_are_replaced(self):
        event = redact_secrets(
            None,
            "info",
            {"event": "login", "password": "hunter22", "Refresh_Token": "abc", "user_id": "u1"},
        )

        assert event == {
            "event": "login",
            "password": REDACTED,
            "Refresh_Token": REDACTED,
            "user_id": "u1",
        }

    def test_hash_suffixed_lookalikes_are_kept(self):
        event = redact_secrets(None, "info", {"event": "x", "content_hash": "ABCDEF"})

        assert event["content_hash"] == "ABCDEF"


class TestRequestContext:
    def teardown_method(self):
        clear_request_context()

    def test_context_is_added_to_events(self):
        set_request_context("req-1", user_id="user-1", path="/albums", method="GET")

        event = add_request_context(None, "info", {"event": "album_created"})

        assert event == {
            "event": "album_created",
            "request_id": "req-1",
            "user_id": "user-1",
            "path": "/albums",
            "method": "GET",
        }

    def test_explicit_fields_win_over_context(self):
        set_request_context("req-1", user_id="user-1")

        event = add_request_context(None, "info", {"event": "x", "user_id": "other"})

        assert event["user_id"] == "other"

    def test_clear_removes_context(self):
        set_request_context("req-1")
        clear_request_context()

        assert get_request_id() is None
        assert add_request_context(None, "info", {"event": "x"}) == {"event": "x"}
