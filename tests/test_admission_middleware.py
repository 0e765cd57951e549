"""
tests/test_admission_middleware.py -- Integration tests for the admission gate in front of /api.

Coverage:
  - Every /api response carries RateLimit-Limit / Remaining / Reset
  - Over-quota requests get 429 + Retry-After before routing or auth run
  - Unauthenticated and unknown /api paths are counted too
  - A rejected login never reaches bcrypt or the store
  - The bare prefix (/api) is gated; look-alike paths (/apiary) are not

Each test installs its own small gate on app.state.admission and restores the
shared one afterwards.
"""

from __future__ import annotations

import pytest

from api.admission import AdmissionGate


@pytest.fixture
def tiny_gate(api_client):
    state = api_client.client.app.state
    original = state.admission
    gate = AdmissionGate(limit=3, window_seconds=900)
    state.admission = gate
    yield gate
    state.admission = original


def test_ratelimit_headers_on_allowed_requests(api_client, tiny_gate, auth_headers):
    resp = api_client.client.get("/api/status", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.headers["ratelimit-limit"] == "3"
    assert resp.headers["ratelimit-remaining"] == "2"
    assert resp.headers["ratelimit-reset"] == "900"


def test_over_quota_returns_429_with_retry_after(api_client, tiny_gate, auth_headers):
    for _ in range(3):
        assert api_client.client.get("/api/status", headers=auth_headers).status_code == 200

    resp = api_client.client.get("/api/status", headers=auth_headers)
    assert resp.status_code == 429
    assert resp.json()["error"]["code"] == "rate_limited"
    assert 1 <= int(resp.headers["retry-after"]) <= 900
    assert resp.headers["ratelimit-remaining"] == "0"


def test_unauthenticated_requests_count_toward_quota(api_client, tiny_gate):
    statuses = [api_client.client.get("/api/status").status_code for _ in range(4)]
    assert statuses == [401, 401, 401, 429]
    assert tiny_gate.count("testclient") == 4


def test_unknown_api_paths_are_counted(api_client, tiny_gate):
    for _ in range(3):
        assert api_client.client.get("/api/does-not-exist").status_code == 404
    assert api_client.client.get("/api/does-not-exist").status_code == 429


def test_rejected_login_does_not_reach_store(api_client, tiny_gate, monkeypatch):
    for _ in range(3):
        api_client.client.post("/api/login", json={"username": "alice", "password": "wrong"})

    def must_not_be_called(username):
        raise AssertionError("store queried for a rejected request")

    monkeypatch.setattr(api_client.store, "find_by_username", must_not_be_called)
    resp = api_client.client.post("/api/login", json={"username": "alice", "password": "correct"})
    assert resp.status_code == 429


def test_health_outside_prefix_is_not_gated(api_client, tiny_gate):
    for _ in range(5):
        api_client.client.get("/api/status")
    assert api_client.client.get("/health").status_code == 200


def test_bare_prefix_without_slash_is_gated(api_client, tiny_gate):
    statuses = [api_client.client.get("/api").status_code for _ in range(4)]
    assert statuses == [404, 404, 404, 429]
    assert tiny_gate.count("testclient") == 4


def test_prefix_lookalike_paths_are_not_gated(api_client, tiny_gate):
    for _ in range(4):
        assert api_client.client.get("/apiary").status_code == 404
    assert tiny_gate.count("testclient") == 0
