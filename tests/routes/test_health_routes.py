from __future__ import annotations


def test_root_acknowledges_readiness(client) -> None:
    r = client.get("/")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["api"] == "/api/v1/on-covid-19"


def test_ready_reports_backend(client) -> None:
    r = client.get("/ready")
    assert r.status_code == 200
    assert r.json()["audit_backend"] == "ledger"


def test_health_requests_are_audited(client, drain) -> None:
    client.get("/")
    drain()
    records = client.portal.call(client.app.state.audit_store.read_all)
    assert [(r.method, r.path, r.status_code) for r in records] == [("GET", "/", 200)]
