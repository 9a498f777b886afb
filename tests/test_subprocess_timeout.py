"""Deadline and cancellation tests against a real child process.

The fake fail2ban-client records its pid for the "slow" jail and then
blocks, so these tests can check that nothing is left running afterwards.
"""

import asyncio
import os
import time

import pytest
from fastapi.testclient import TestClient

from fail2rest.main import create_app
from fail2rest.services.fail2ban import Fail2banClient, Fail2banTimeoutError

from tests.conftest import API, FakeFail2ban, make_settings


def is_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True


async def wait_for_child(fake: FakeFail2ban, timeout: float = 5.0) -> int:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        pid = fake.child_pid()
        if pid is not None:
            return pid
        await asyncio.sleep(0.02)
    raise AssertionError("fake fail2ban-client never started")


class TestCommandTimeout:
    @pytest.mark.asyncio
    async def test_timeout_kills_and_reaps_child(self, fake_fail2ban):
        client = Fail2banClient(client_path=str(fake_fail2ban.path), command_timeout=0.3)

        started = time.monotonic()
        with pytest.raises(Fail2banTimeoutError):
            await client.jail_status("slow")

        assert time.monotonic() - started < 5
        pid = fake_fail2ban.child_pid()
        assert pid is not None
        assert not is_alive(pid)

    @pytest.mark.asyncio
    async def test_per_call_timeout(self, fake_fail2ban):
        client = Fail2banClient(client_path=str(fake_fail2ban.path), command_timeout=30.0)

        with pytest.raises(Fail2banTimeoutError):
            await client.start_jail("slow", timeout=0.3)

        assert not is_alive(fake_fail2ban.child_pid())

    @pytest.mark.asyncio
    async def test_cancellation_kills_and_reaps_child(self, fake_fail2ban):
        client = Fail2banClient(client_path=str(fake_fail2ban.path), command_timeout=30.0)

        task = asyncio.create_task(client.jail_status("slow"))
        pid = await wait_for_child(fake_fail2ban)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert not is_alive(pid)


class TestRequestTimeout:
    def test_request_deadline_returns_408_and_reaps_child(self, fake_fail2ban):
        settings = make_settings(
            fail2ban_client_path=str(fake_fail2ban.path),
            request_timeout_seconds=0.5,
        )
        app = create_app(settings)
        token, _ = app.state.auth_service.generate_token()

        with TestClient(app) as client:
            started = time.monotonic()
            response = client.get(
                f"{API}/jails/slow/status", headers={"Authorization": f"Bearer {token}"}
            )

        assert time.monotonic() - started < 5
        assert response.status_code == 408
        assert response.json()["success"] is False

        pid = fake_fail2ban.child_pid()
        assert pid is not None
        assert not is_alive(pid)

    def test_fast_requests_are_unaffected(self, fake_fail2ban):
        settings = make_settings(
            fail2ban_client_path=str(fake_fail2ban.path),
            request_timeout_seconds=5,
        )
        app = create_app(settings)
        token, _ = app.state.auth_service.generate_token()

        with TestClient(app) as client:
            response = client.get(f"{API}/jails", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
