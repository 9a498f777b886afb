"""Tests for the health endpoint."""

from fastapi.testclient import TestClient

from fail2rest.main import create_app

from tests.conftest import API, make_settings


def test_health_ok(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["service"] == "fail2ban-rest"
    assert isinstance(body["time"], int)


def test_health_requires_no_token(client):
    assert client.get("/health").status_code == 200
    assert client.get(f"{API}/health").status_code == 404


def test_health_degraded_when_fail2ban_unreachable(tmp_path):
    app = create_app(make_settings(fail2ban_client_path=str(tmp_path / "missing-client")))

    with TestClient(app) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"


def test_docs_hidden_unless_debug(client, fake_fail2ban):
    assert client.get("/docs").status_code == 404

    app = create_app(make_settings(debug=True, fail2ban_client_path=str(fake_fail2ban.path)))
    with TestClient(app) as debug_client:
        assert debug_client.get("/openapi.json").status_code == 200
