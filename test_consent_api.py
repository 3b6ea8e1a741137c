#!/usr/bin/env python3
"""Tests for the /api/consent endpoint"""
import json
from unittest import mock

import pytest
import requests
from werkzeug.exceptions import RequestEntityTooLarge

from consent_service.server import app

CONFIG_VARS = (
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "HASH_IP",
    "HASH_SALT",
    "DISCORD_WEBHOOK_URL",
    "SUPABASE_PREFER_RETURN",
    "OUTBOUND_TIMEOUT_SECONDS",
)

SUPABASE_URL = "https://project.supabase.co"
WEBHOOK_URL = "https://discord.com/api/webhooks/1/token"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def supabase_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", SUPABASE_URL)
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key")


@pytest.fixture
def post_mock():
    with mock.patch("requests.post") as patched:
        patched.return_value.status_code = 201
        yield patched


def _calls_to(post_mock, prefix):
    return [c for c in post_mock.call_args_list if c.args[0].startswith(prefix)]


@pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"])
def test_non_post_methods_rejected(client, method):
    response = client.open("/api/consent", method=method)
    assert response.status_code == 405
    assert response.headers["Allow"] == "POST"
    if method != "HEAD":
        assert response.get_json() == {"ok": False, "error": "Method Not Allowed"}


@pytest.mark.parametrize(
    "body",
    [{}, {"consent": False}, {"consent": None}, {"consent": 0}, {"consent": ""}, {"other": True}, [1, 2]],
)
def test_missing_consent_rejected(client, post_mock, supabase_env, body):
    response = client.post("/api/consent", json=body)
    assert response.status_code == 400
    assert response.get_json() == {"ok": False, "error": "consent not provided"}
    post_mock.assert_not_called()


def test_malformed_json_is_missing_consent(client):
    response = client.post("/api/consent", data="{not json", content_type="application/json")
    assert response.status_code == 400
    assert response.get_json()["error"] == "consent not provided"


def test_form_encoded_consent_accepted(client, post_mock):
    response = client.post("/api/consent", data={"consent": "yes"})
    assert response.status_code == 200
    assert response.get_json() == {"ok": True}


def test_no_credentials_skips_insert(client, post_mock, caplog):
    response = client.post("/api/consent", json={"consent": True})
    assert response.status_code == 200
    assert response.get_json() == {"ok": True}
    post_mock.assert_not_called()
    assert "skipping DB insert" in caplog.text


def test_insert_request_shape(client, post_mock, supabase_env):
    response = client.post(
        "/api/consent",
        json={"consent": True},
        headers={"X-Forwarded-For": "9.9.9.9, 8.8.8.8", "User-Agent": "pytest-agent"},
    )
    assert response.status_code == 200

    post_mock.assert_called_once()
    call = post_mock.call_args
    assert call.args[0] == f"{SUPABASE_URL}/rest/v1/ips"
    assert call.kwargs["headers"]["apikey"] == "service-key"
    assert call.kwargs["headers"]["Authorization"] == "Bearer service-key"
    assert call.kwargs["headers"]["Prefer"] == "return=minimal"

    record = call.kwargs["json"]
    assert record["ip"] == "9.9.9.9"
    assert record["forwarded_for"] == "9.9.9.9, 8.8.8.8"
    assert record["user_agent"] == "pytest-agent"
    assert record["consent_time"].endswith("Z")


def test_peer_address_used_without_forwarded_header(client, post_mock, supabase_env):
    client.post("/api/consent", json={"consent": True}, environ_base={"REMOTE_ADDR": "10.0.0.7"})
    record = post_mock.call_args.kwargs["json"]
    assert record["ip"] == "10.0.0.7"
    assert record["forwarded_for"] is None


def test_hashed_identifier_stored(client, post_mock, supabase_env, monkeypatch):
    monkeypatch.setenv("HASH_IP", "1")
    monkeypatch.setenv("HASH_SALT", "s")
    client.post("/api/consent", json={"consent": True}, headers={"X-Forwarded-For": "1.2.3.4"})
    record = post_mock.call_args.kwargs["json"]
    assert record["ip"] == "871602288455ee6d40055e94823ee71e6de0a72ff8a197e2fd6a58e425f9c519"
    assert record["forwarded_for"] == "1.2.3.4"


def test_hash_ip_other_values_ignored(client, post_mock, supabase_env, monkeypatch):
    monkeypatch.setenv("HASH_IP", "true")
    client.post("/api/consent", json={"consent": True}, headers={"X-Forwarded-For": "1.2.3.4"})
    assert post_mock.call_args.kwargs["json"]["ip"] == "1.2.3.4"


def test_webhook_notification(client, post_mock, supabase_env, monkeypatch):
    monkeypatch.setenv("DISCORD_WEBHOOK_URL", WEBHOOK_URL)
    client.post("/api/consent", json={"consent": True}, headers={"User-Agent": "ua"}, environ_base={"REMOTE_ADDR": "5.6.7.8"})

    assert post_mock.call_count == 2
    record = _calls_to(post_mock, SUPABASE_URL)[0].kwargs["json"]
    content = _calls_to(post_mock, WEBHOOK_URL)[0].kwargs["json"]["content"]
    assert content == (
        "New consent recorded\n"
        "IP: 5.6.7.8\n"
        "Forwarded: N/A\n"
        "UA: ua\n"
        f"Time: {record['consent_time']}"
    )


def test_webhook_without_supabase(client, post_mock, monkeypatch):
    monkeypatch.setenv("DISCORD_WEBHOOK_URL", WEBHOOK_URL)
    response = client.post("/api/consent", json={"consent": True})
    assert response.status_code == 200
    post_mock.assert_called_once()
    assert post_mock.call_args.args[0] == WEBHOOK_URL


@pytest.mark.parametrize("failure", [requests.ConnectionError("down"), RuntimeError("boom")])
def test_downstream_failures_do_not_change_response(client, post_mock, supabase_env, monkeypatch, failure):
    monkeypatch.setenv("DISCORD_WEBHOOK_URL", WEBHOOK_URL)
    post_mock.side_effect = failure
    response = client.post("/api/consent", json={"consent": True})
    assert response.status_code == 200
    assert response.get_json() == {"ok": True}
    assert post_mock.call_count == 2


def test_error_status_from_sink_is_logged(client, post_mock, supabase_env, caplog):
    post_mock.return_value.status_code = 401
    post_mock.return_value.raise_for_status.side_effect = requests.HTTPError("401 Unauthorized")
    response = client.post("/api/consent", json={"consent": True})
    assert response.status_code == 200
    assert "Supabase insert error" in caplog.text


def test_internal_error_returns_500(client, post_mock):
    with mock.patch("consent_service.server.ConsentRecorder.record", side_effect=ValueError("bad")):
        response = client.post("/api/consent", json={"consent": True})
    assert response.status_code == 500
    assert response.get_json() == {"ok": False, "error": "server error"}


def test_repeated_requests_are_independent(client, post_mock, supabase_env):
    first = client.post("/api/consent", json={"consent": True})
    second = client.post("/api/consent", json={"consent": True})

    assert first.get_json() == second.get_json() == {"ok": True}
    assert post_mock.call_count == 2
    times = [c.kwargs["json"]["consent_time"] for c in post_mock.call_args_list]
    assert times[0] <= times[1]


def test_health(client, supabase_env):
    response = client.get("/health")
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "healthy"
    assert payload["supabase"] == "configured"
    assert payload["discord"] == "not configured"


def test_unknown_path(client):
    response = client.get("/api/unknown")
    assert response.status_code == 404
    assert json.loads(response.data) == {"ok": False, "error": "Not Found"}


def test_http_errors_keep_their_status(client):
    with mock.patch("consent_service.server.ConsentConfig.from_env", side_effect=RequestEntityTooLarge()):
        response = client.get("/health")
    assert response.status_code == 413
    assert response.get_json() == {"ok": False, "error": "Request Entity Too Large"}
