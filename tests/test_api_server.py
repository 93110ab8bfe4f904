"""
API tests: health, activities before and after a resync, resync body validation.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from backend_activitylog.api_server.server import create_app
from backend_activitylog.ledger.models import canonical_address
from backend_activitylog.pipeline import ActivityFeed
from conftest import VOTING, tx_hash


@pytest.fixture
def feed(ledger, directory, describer) -> ActivityFeed:
    ledger.add_tx(1, to=VOTING, timestamp=1_700_000_000)
    return ActivityFeed(ledger, directory, describer)


@pytest.fixture
def client(feed):
    with TestClient(create_app(feed)) as test_client:
        yield test_client


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_activities_pending_before_first_run(client):
    resp = client.get("/activities")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "pending"
    assert body["generation"] == 0
    assert body["activities"] == []


def test_resync_then_activities(client):
    resync = client.post("/resync", json={"reason": "sync_event"})

    assert resync.status_code == 200
    assert resync.json()["status"] == "ok"
    assert resync.json()["reason"] == "sync_event"

    body = client.get("/activities").json()
    assert body["generation"] == 1
    assert body["activities"] == [
        {
            "from": body["activities"][0]["from"],
            "description": f"call 0x on {canonical_address(VOTING)}",
            "annotatedDescription": [{"type": "address", "value": canonical_address(VOTING)}],
            "forwarder": False,
            "app": canonical_address(VOTING),
            "timestamp": 1_700_000_000_000,
            "txHash": tx_hash(1),
        }
    ]


def test_resync_without_body_defaults_to_manual(client):
    resp = client.post("/resync")

    assert resp.status_code == 200
    assert resp.json()["reason"] == "manual"


def test_resync_rejects_empty_reason(client):
    resp = client.post("/resync", json={"reason": ""})
    assert resp.status_code == 422


def test_resync_failure_is_reported_not_raised(ledger, describer, unavailable_directory):
    feed = ActivityFeed(ledger, unavailable_directory, describer)
    with TestClient(create_app(feed)) as test_client:
        resp = test_client.post("/resync", json={"reason": "manual"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "failed"
    assert body["error"]["type"] == "DirectoryUnavailable"
