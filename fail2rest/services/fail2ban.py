"""fail2ban-client adapter.

Every operation spawns a fresh `fail2ban-client` process (optionally through
`sudo -n`), waits for its combined stdout/stderr and parses the text. There
is no persistent connection to the fail2ban server.

The wait is bounded by the per-command timeout and by the deadline of the
HTTP request being served. If either fires, or the calling task is cancelled,
the child is terminated and reaped before the error propagates.
"""

import asyncio
import ipaddress
import logging
import re
import time
from contextlib import suppress
from dataclasses import asdict, dataclass, field
from typing import Any

from fail2rest.core.config import Settings
from fail2rest.core.request_context import remaining_request_time
from fail2rest.services.parsers import (
    parse_banned_ips,
    parse_jail_list,
    parse_jail_status,
    parse_server_status,
)

logger = logging.getLogger(__name__)

PERMISSION_DENIED_PHRASES = ("Permission denied", "you must be root")

PERMISSION_REMEDIATION = (
    "permission denied: fail2ban requires root privileges. Either run the server as root, "
    "or set FAIL2REST_USE_SUDO=true and configure passwordless sudo for fail2ban-client."
)

_JAIL_NOT_FOUND = re.compile(r"does not exist|unknown jail|no such jail", re.IGNORECASE)
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

# Grace period between SIGTERM and SIGKILL when reaping a child. SIGTERM
# first so that sudo can relay it to fail2ban-client.
TERMINATE_GRACE_SECONDS = 2.0


class Fail2banError(Exception):
    """Base error for fail2ban-client failures."""

    def __init__(self, message: str, output: str = "", returncode: int | None = None):
        super().__init__(message)
        self.output = output
        self.returncode = returncode


class InvalidArgumentError(Fail2banError, ValueError):
    """A jail name or IP address was rejected before spawning a process."""


class Fail2banCommandError(Fail2banError):
    """fail2ban-client exited with a nonzero status."""


class Fail2banPermissionError(Fail2banCommandError):
    """fail2ban-client refused to run without root privileges."""


class JailNotFoundError(Fail2banCommandError):
    """fail2ban-client reported that the jail does not exist."""


class Fail2banUnavailableError(Fail2banError):
    """The fail2ban-client executable could not be started."""


class Fail2banTimeoutError(Fail2banError):
    """fail2ban-client did not finish before the deadline."""


@dataclass
class ServerStatus:
    jails: list[str] = field(default_factory=list)
    fields: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {**self.fields, "jails": list(self.jails)}


@dataclass
class JailRecord:
    name: str
    fields: dict[str, str] = field(default_factory=dict)
    banned_ips: list[str] | None = None


@dataclass
class JailStats:
    filter: str | None = None
    currently_banned: str | None = None
    total_banned: str | None = None
    banned_ips: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass
class OverallStats:
    jail_count: int
    jails: list[str]
    total_banned_ips: int
    jail_details: dict[str, JailStats]
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "jail_count": self.jail_count,
            "jails": list(self.jails),
            "total_banned_ips": self.total_banned_ips,
            "jail_details": {name: stats.to_dict() for name, stats in self.jail_details.items()},
            "timestamp": self.timestamp,
        }


def validate_jail_name(name: str) -> str:
    """Reject names fail2ban-client could read as options or split apart."""
    if not name or not name.strip():
        raise InvalidArgumentError("Jail name is required")
    if name.startswith("-"):
        raise InvalidArgumentError("Jail name may not start with '-'")
    if any(ch.isspace() or not ch.isprintable() for ch in name):
        raise InvalidArgumentError("Jail name may not contain whitespace or control characters")
    return name


def validate_ip_address(ip: str) -> str:
    """Return the address if it parses as IPv4/IPv6, otherwise raise."""
    candidate = (ip or "").strip()
    try:
        ipaddress.ip_address(candidate)
    except ValueError as e:
        raise InvalidArgumentError(f"Invalid IP address: {ip!r}") from e
    return candidate


def leading_int(value: str | None) -> int:
    """Best-effort integer parse; anything without leading digits counts as 0."""
    if not value:
        return 0
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else 0


class Fail2banClient:
    """Async wrapper around the fail2ban-client executable."""

    def __init__(
        self,
        client_path: str = "/usr/bin/fail2ban-client",
        use_sudo: bool = False,
        sudo_path: str = "sudo",
        command_timeout: float = 30.0,
    ):
        self.client_path = client_path
        self.use_sudo = use_sudo
        self.sudo_path = sudo_path
        self.command_timeout = command_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "Fail2banClient":
        return cls(
            client_path=settings.fail2ban_client_path,
            use_sudo=settings.use_sudo,
            sudo_path=settings.sudo_path,
            command_timeout=settings.command_timeout_seconds,
        )

    def build_command(self, *args: str) -> list[str]:
        """Argument vector for a subcommand; never passed through a shell."""
        cmd = [self.client_path, *args]
        if self.use_sudo:
            # -n: fail instead of prompting for a password
            cmd = [self.sudo_path, "-n", *cmd]
        return cmd

    def _effective_timeout(self, timeout: float | None) -> float:
        effective = self.command_timeout if timeout is None else timeout
        remaining = remaining_request_time()
        if remaining is not None:
            effective = min(effective, remaining)
        return effective

    async def _execute(self, *args: str, timeout: float | None = None) -> str:
        """Run fail2ban-client and return its trimmed combined output."""
        cmd = self.build_command(*args)
        effective_timeout = self._effective_timeout(timeout)
        if effective_timeout <= 0:
            raise Fail2banTimeoutError("Request deadline passed before fail2ban-client was started")
        logger.debug(f"Running {cmd} (timeout {effective_timeout:.1f}s)")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            logger.error(f"Cannot start {cmd[0]}: {e}")
            raise Fail2banUnavailableError(f"Cannot start fail2ban-client ({cmd[0]}): {e}") from e

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=effective_timeout)
        except asyncio.TimeoutError as e:
            await self._reap(process)
            logger.warning(
                f"fail2ban-client {' '.join(args)} timed out after {effective_timeout:.1f}s"
            )
            raise Fail2banTimeoutError(
                f"fail2ban-client timed out after {effective_timeout:.1f}s"
            ) from e
        except asyncio.CancelledError:
            await self._reap(process)
            logger.info(f"fail2ban-client {' '.join(args)} cancelled, child reaped")
            raise

        output = (stdout or b"").decode("utf-8", errors="replace").strip()

        if process.returncode != 0:
            raise self._classify_failure(process.returncode, output)

        return output

    @staticmethod
    def _classify_failure(returncode: int | None, output: str) -> Fail2banCommandError:
        if any(phrase in output for phrase in PERMISSION_DENIED_PHRASES):
            return Fail2banPermissionError(
                f"{PERMISSION_REMEDIATION} Error: {output}", output=output, returncode=returncode
            )
        if _JAIL_NOT_FOUND.search(output):
            return JailNotFoundError(
                f"Jail not found: {output}", output=output, returncode=returncode
            )
        return Fail2banCommandError(
            f"fail2ban-client error (exit status {returncode}), output: {output}",
            output=output,
            returncode=returncode,
        )

    @staticmethod
    async def _reap(process: asyncio.subprocess.Process) -> None:
        """Terminate the child (escalating to SIGKILL) and wait for it."""
        if process.returncode is not None:
            return
        with suppress(ProcessLookupError):
            process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=TERMINATE_GRACE_SECONDS)
        except asyncio.TimeoutError:
            with suppress(ProcessLookupError):
                process.kill()
            await process.wait()
        except asyncio.CancelledError:
            # Cancelled while waiting out the grace period: never leave the child behind
            with suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            raise

    # --- Status ---

    async def status(self, *, timeout: float | None = None) -> ServerStatus:
        output = await self._execute("status", timeout=timeout)
        jails, fields = parse_server_status(output)
        return ServerStatus(jails=jails, fields=fields)

    async def jail_status(self, name: str, *, timeout: float | None = None) -> dict[str, str]:
        validate_jail_name(name)
        output = await self._execute("status", name, timeout=timeout)
        return parse_jail_status(output)

    async def jail(
        self, name: str, *, include_banned: bool = False, timeout: float | None = None
    ) -> JailRecord:
        record = JailRecord(name=name, fields=await self.jail_status(name, timeout=timeout))
        if include_banned:
            record.banned_ips = await self.banned_ips(name, timeout=timeout)
        return record

    async def jails(self, *, timeout: float | None = None) -> list[str]:
        output = await self._execute("status", timeout=timeout)
        return parse_jail_list(output)

    async def ping(self) -> bool:
        """True if fail2ban-client answers `status` successfully."""
        try:
            await self.status()
            return True
        except Fail2banError as e:
            logger.warning(f"fail2ban is not reachable: {e}")
            return False

    # --- Bans ---

    async def banned_ips(self, name: str, *, timeout: float | None = None) -> list[str]:
        validate_jail_name(name)
        output = await self._execute("get", name, "banned", timeout=timeout)
        return parse_banned_ips(output)

    async def ban_ip(self, name: str, ip: str, *, timeout: float | None = None) -> None:
        validate_jail_name(name)
        address = validate_ip_address(ip)
        await self._execute("set", name, "banip", address, timeout=timeout)
        logger.info(f"Banned {address} in jail {name}")

    async def unban_ip(self, name: str, ip: str, *, timeout: float | None = None) -> None:
        validate_jail_name(name)
        address = validate_ip_address(ip)
        await self._execute("set", name, "unbanip", address, timeout=timeout)
        logger.info(f"Unbanned {address} in jail {name}")

    # --- Lifecycle ---

    async def _lifecycle(self, action: str, name: str, timeout: float | None) -> None:
        validate_jail_name(name)
        await self._execute(action, name, timeout=timeout)
        logger.info(f"Jail {name}: {action} succeeded")

    async def start_jail(self, name: str, *, timeout: float | None = None) -> None:
        await self._lifecycle("start", name, timeout)

    async def stop_jail(self, name: str, *, timeout: float | None = None) -> None:
        await self._lifecycle("stop", name, timeout)

    async def restart_jail(self, name: str, *, timeout: float | None = None) -> None:
        await self._lifecycle("restart", name, timeout)

    async def reload_jail(self, name: str, *, timeout: float | None = None) -> None:
        await self._lifecycle("reload", name, timeout)

    # --- Statistics ---

    async def jail_stats(self, name: str, *, timeout: float | None = None) -> JailStats:
        status = await self.jail_status(name, timeout=timeout)
        stats = JailStats(
            filter=status.get("Filter"),
            currently_banned=status.get("Currently banned"),
            total_banned=status.get("Total banned"),
        )
        if "Banned IP list" in status:
            stats.banned_ips = status["Banned IP list"].split()
        return stats

    async def overall_stats(self, *, timeout: float | None = None) -> OverallStats:
        """Aggregate stats over all jails; a failing jail is skipped."""
        jails = await self.jails(timeout=timeout)

        details: dict[str, JailStats] = {}
        total_banned = 0
        for jail in jails:
            try:
                stats = await self.jail_stats(jail, timeout=timeout)
            except Fail2banError as e:
                logger.warning(f"Skipping jail {jail} in overall stats: {e}")
                continue
            details[jail] = stats
            total_banned += leading_int(stats.currently_banned)

        return OverallStats(
            jail_count=len(jails),
            jails=jails,
            total_banned_ips=total_banned,
            jail_details=details,
            timestamp=int(time.time()),
        )
