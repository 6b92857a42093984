from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from actions import available_actions
from baozi.main import app, get_action_context


@pytest.fixture
def client(context, test_settings, monkeypatch):
    """Test client wired to the fake chain; overrides are cleared afterwards."""
    monkeypatch.setattr("baozi.main.get_settings", lambda: test_settings)
    app.dependency_overrides[get_action_context] = lambda: context
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_healthcheck(client, test_settings):
    """Verify the healthcheck reports network, program and action count."""
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "network": "devnet",
        "program_id": test_settings.baozi_program_id,
        "actions": len(available_actions()),
    }


def test_list_actions(client):
    response = client.get("/actions")
    assert response.status_code == 200
    names = [item["name"] for item in response.json()]
    assert names == list(available_actions())


def test_describe_action(client):
    response = client.get("/actions/build_bet_transaction")
    assert response.status_code == 200
    body = response.json()
    assert body["builds_transaction"] is True
    assert "user_wallet" in body["params_schema"]["required"]


def test_unknown_action_is_404(client):
    assert client.get("/actions/does_not_exist").status_code == 404
    assert client.post("/actions/does_not_exist", json={}).status_code == 404


def test_run_action_without_body(client):
    response = client.post("/actions/get_timing_rules")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["bettingFreezeSeconds"] == 300


def test_run_action_against_chain(client, chain, creator):
    market = chain.put_market(creator, yes_pool=1_000_000_000, no_pool=1_000_000_000)
    response = client.post(
        "/actions/get_quote", json={"market": market, "side": "No", "amount": "1"}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["netPayoutLamports"] == 1_485_000_000


def test_rule_failures_return_200_envelope(client):
    response = client.post("/actions/get_quote", json={"market": "nope", "side": "Yes"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert {violation["rule"] for violation in body["violations"]} == {"params"}
