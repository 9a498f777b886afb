"""Tests for the login endpoint."""

from fastapi.testclient import TestClient

from fail2rest.main import create_app

from tests.conftest import API, TEST_API_KEY, TEST_PASSWORD, TEST_USERNAME, make_settings

LOGIN = f"{API}/auth/login"


class TestLogin:
    def test_login_with_api_key(self, client, app):
        response = client.post(LOGIN, json={"api_key": TEST_API_KEY})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert "error" not in body
        claims = app.state.auth_service.validate_token(body["data"]["token"])
        assert claims.authorized is True
        assert body["data"]["expires_at"]

    def test_login_with_password(self, client):
        response = client.post(LOGIN, json={"username": TEST_USERNAME, "password": TEST_PASSWORD})

        assert response.status_code == 200
        assert response.json()["data"]["token"]

    def test_issued_token_opens_protected_routes(self, client):
        token = client.post(LOGIN, json={"api_key": TEST_API_KEY}).json()["data"]["token"]

        response = client.get(f"{API}/jails", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200

    def test_wrong_api_key(self, client):
        response = client.post(LOGIN, json={"api_key": "wrong"})

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Invalid API key"}

    def test_api_key_takes_precedence_over_password(self, client):
        response = client.post(
            LOGIN,
            json={"api_key": "wrong", "username": TEST_USERNAME, "password": TEST_PASSWORD},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid API key"

    def test_wrong_password(self, client):
        response = client.post(LOGIN, json={"username": TEST_USERNAME, "password": "nope"})

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid username or password"

    def test_unknown_user_gets_same_error(self, client):
        response = client.post(LOGIN, json={"username": "mallory", "password": TEST_PASSWORD})

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid username or password"

    def test_no_credentials(self, client):
        response = client.post(LOGIN, json={"username": TEST_USERNAME})

        assert response.status_code == 400
        assert response.json()["error"] == (
            "Either 'api_key' or 'username' and 'password' must be provided"
        )

    def test_malformed_json(self, client):
        response = client.post(
            LOGIN, content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert response.json()["error"].startswith("Invalid request")

    def test_auth_not_configured(self, fake_fail2ban):
        app = create_app(make_settings(api_keys=[], fail2ban_client_path=str(fake_fail2ban.path)))

        with TestClient(app) as client:
            response = client.post(LOGIN, json={"api_key": "anything"})

        assert response.status_code == 500
        assert "not configured" in response.json()["error"]


class TestLoginRateLimit:
    def test_limit_exhausted(self, fake_fail2ban):
        app = create_app(
            make_settings(login_rate_limit="2-M", fail2ban_client_path=str(fake_fail2ban.path))
        )

        with TestClient(app) as client:
            first = client.post(LOGIN, json={"api_key": TEST_API_KEY})
            second = client.post(LOGIN, json={"api_key": "wrong"})
            third = client.post(LOGIN, json={"api_key": TEST_API_KEY})

        assert first.status_code == 200
        assert first.headers["X-RateLimit-Limit"] == "2"
        assert first.headers["X-RateLimit-Remaining"] == "1"
        assert second.status_code == 401
        assert second.headers["X-RateLimit-Remaining"] == "0"

        assert third.status_code == 429
        assert third.json() == {"success": False, "error": "Rate limit exceeded"}
        assert third.headers["X-RateLimit-Remaining"] == "0"
        assert int(third.headers["Retry-After"]) >= 1
        assert "X-RateLimit-Reset" in third.headers

    def test_limit_applies_to_login_only(self, fake_fail2ban):
        app = create_app(
            make_settings(login_rate_limit="1-M", fail2ban_client_path=str(fake_fail2ban.path))
        )
        token, _ = app.state.auth_service.generate_token()
        headers = {"Authorization": f"Bearer {token}"}

        with TestClient(app) as client:
            client.post(LOGIN, json={"api_key": TEST_API_KEY})
            limited = client.post(LOGIN, json={"api_key": TEST_API_KEY})
            other = client.get(f"{API}/jails", headers=headers)

        assert limited.status_code == 429
        assert other.status_code == 200
        assert "X-RateLimit-Limit" not in other.headers

    def test_reset_clears_counters(self, fake_fail2ban):
        app = create_app(
            make_settings(login_rate_limit="1-M", fail2ban_client_path=str(fake_fail2ban.path))
        )

        with TestClient(app) as client:
            client.post(LOGIN, json={"api_key": TEST_API_KEY})
            assert client.post(LOGIN, json={"api_key": TEST_API_KEY}).status_code == 429
            app.state.login_rate_limiter.reset()
            assert client.post(LOGIN, json={"api_key": TEST_API_KEY}).status_code == 200
