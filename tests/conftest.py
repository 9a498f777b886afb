"""Pytest configuration and fixtures for fail2rest tests."""

import stat
from collections.abc import Generator
from dataclasses import dataclass
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from fail2rest.core.config import Settings
from fail2rest.main import create_app
from fail2rest.services.auth import hash_password

TEST_JWT_SECRET = "test-jwt-secret-for-fail2rest-tests-only-0123456789"
TEST_API_KEY = "test-api-key-for-testing-only"
TEST_USERNAME = "admin"
TEST_PASSWORD = "correct horse battery staple"

API = "/api/v1"

# Stand-in for fail2ban-client. Every invocation appends its argv to a log;
# the "slow" jail records its pid and then blocks.
FAKE_CLIENT_SCRIPT = r"""#!/bin/sh
echo "$*" >> "{calls_log}"
case "$*" in
  "status")
    printf 'Status\n|- Number of jail:\t2\n`- Jail list:\tsshd, nginx-http-auth\n'
    ;;
  "status sshd")
    printf 'Status for the jail: sshd\n|- Filter\n|  |- Currently failed:\t1\n|  |- Total failed:\t12\n|  `- File list:\t/var/log/auth.log\n`- Actions\n   |- Currently banned:\t2\n   |- Total banned:\t7\n   `- Banned IP list:\t192.0.2.10 198.51.100.7\n'
    ;;
  "status nginx-http-auth")
    echo "Failed to access socket path: /var/run/fail2ban/fail2ban.sock. Is fail2ban running?"
    exit 255
    ;;
  "status locked"|"start locked")
    echo "Permission denied to socket: /var/run/fail2ban/fail2ban.sock, (you must be root)"
    exit 1
    ;;
  "status slow"|"start slow")
    echo $$ > "{pid_file}"
    exec sleep 30
    ;;
  "get sshd banned")
    printf '192.0.2.10\n198.51.100.7\n'
    ;;
  "set sshd banip "*|"set sshd unbanip "*)
    echo 1
    ;;
  "start sshd"|"stop sshd"|"restart sshd"|"reload sshd")
    echo OK
    ;;
  *)
    echo "Sorry but the jail '$2' does not exist"
    exit 255
    ;;
esac
"""


@dataclass
class FakeFail2ban:
    path: Path
    calls_log: Path
    pid_file: Path

    def calls(self) -> list[str]:
        """Argument strings of every invocation so far, oldest first."""
        if not self.calls_log.exists():
            return []
        return self.calls_log.read_text().splitlines()

    def child_pid(self) -> int | None:
        if not self.pid_file.exists():
            return None
        text = self.pid_file.read_text().strip()
        return int(text) if text else None


def make_settings(**overrides) -> Settings:
    """Settings for tests, independent of the real environment."""
    values = {
        "jwt_secret_key": TEST_JWT_SECRET,
        "api_keys": [TEST_API_KEY],
        "login_rate_limit": "100-M",
        "log_format": "dev",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(scope="session")
def password_hash() -> str:
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def fake_fail2ban(tmp_path: Path) -> FakeFail2ban:
    """Write an executable fake fail2ban-client into tmp_path."""
    fake = FakeFail2ban(
        path=tmp_path / "fail2ban-client",
        calls_log=tmp_path / "calls.log",
        pid_file=tmp_path / "child.pid",
    )
    fake.path.write_text(
        FAKE_CLIENT_SCRIPT.replace("{calls_log}", str(fake.calls_log)).replace(
            "{pid_file}", str(fake.pid_file)
        )
    )
    fake.path.chmod(fake.path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return fake


@pytest.fixture
def settings(fake_fail2ban: FakeFail2ban, password_hash: str) -> Settings:
    return make_settings(
        users={TEST_USERNAME: password_hash},
        fail2ban_client_path=str(fake_fail2ban.path),
    )


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(app: FastAPI) -> dict[str, str]:
    """Authorization header carrying a freshly issued token."""
    token, _ = app.state.auth_service.generate_token()
    return {"Authorization": f"Bearer {token}"}
