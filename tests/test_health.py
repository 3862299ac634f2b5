import pytest


@pytest.mark.smoke
def test_health_ok(client):
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.get_json() == {"status": "ok", "db": "ok"}


@pytest.mark.smoke
def test_preflight_returns_204(client):
    r = client.open("/api/v1/leads", method="OPTIONS")
    assert r.status_code == 204


@pytest.mark.smoke
def test_unknown_route_uses_error_payload(client):
    r = client.get("/api/v1/nao-existe")
    assert r.status_code == 404
    assert r.get_json()["error_kind"] == "not_found"
