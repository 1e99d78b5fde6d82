"""Tests for the shared HTTP helpers."""

import logging
from unittest.mock import MagicMock, PropertyMock, patch

import pytest
import requests

import supabase_migrator.utils.logging as log_module
from supabase_migrator.services.http import is_success, response_text, send


@pytest.fixture()
def session(response_factory):
    session = MagicMock(spec=requests.Session)
    session.request.return_value = response_factory(text="body text")
    return session


class TestSend:
    """Tests for the request wrapper."""

    def test_json_body_is_forwarded(self, session):
        send(session, "POST", "https://x/bucket", json_body={"name": "a"}, timeout=5)

        session.request.assert_called_once_with(
            "POST", "https://x/bucket", json={"name": "a"}, timeout=5
        )

    def test_response_body_logged_in_debug_mode(self, session, caplog, monkeypatch):
        monkeypatch.setattr(log_module, "_DEBUG_API_ENABLED", True)
        with caplog.at_level(logging.DEBUG, logger="supabase_migrator"):
            send(session, "GET", "https://x/bucket")

        record = caplog.records[-1]
        assert record.getMessage() == "API Response: 200 from https://x/bucket"
        assert record.response == "body text"

    def test_body_not_read_without_debug_mode(self, session, caplog, monkeypatch):
        monkeypatch.setattr(log_module, "_DEBUG_API_ENABLED", False)
        with patch("supabase_migrator.services.http.response_text") as read_body:
            with caplog.at_level(logging.DEBUG, logger="supabase_migrator"):
                send(session, "GET", "https://x/bucket")

        read_body.assert_not_called()
        assert caplog.records == []


class TestResponseHelpers:
    def test_is_success(self, response_factory):
        assert is_success(response_factory(status_code=204))
        assert not is_success(response_factory(status_code=404))

    def test_undecodable_body_reads_as_empty(self):
        response = MagicMock()
        type(response).text = PropertyMock(
            side_effect=UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        )
        assert response_text(response) == ""
