"""Command line entry point.

Usage:
    fail2rest serve [--host HOST] [--port PORT]
    fail2rest hash-password [--password PASSWORD]

Configuration is read from FAIL2REST_* environment variables (or .env).
"""

import argparse
import asyncio
import getpass
import sys

import uvicorn
from pydantic import ValidationError

from fail2rest.core.config import get_settings
from fail2rest.core.logging import get_logger, setup_logging
from fail2rest.services.auth import hash_password
from fail2rest.services.fail2ban import Fail2banClient

logger = get_logger("cli")


def serve(args: argparse.Namespace) -> int:
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"ERROR: invalid configuration:\n{e}", file=sys.stderr)
        return 1

    setup_logging(level=settings.log_level, format_type=settings.log_format)

    # The server still starts when fail2ban is down; /health reports degraded
    client = Fail2banClient.from_settings(settings)
    if asyncio.run(client.ping()):
        logger.info("fail2ban-client is reachable")
    else:
        logger.warning("fail2ban-client check failed; continuing anyway")

    host = args.host or settings.host
    port = args.port or settings.port
    scheme = "https" if settings.tls_enabled else "http"
    logger.info(f"Listening on {scheme}://{host}:{port}{settings.api_prefix}")

    uvicorn.run(
        "fail2rest.main:create_app",
        factory=True,
        host=host,
        port=port,
        ssl_certfile=settings.tls_cert_file if settings.tls_enabled else None,
        ssl_keyfile=settings.tls_key_file if settings.tls_enabled else None,
        log_config=None,
    )
    return 0


def hash_password_command(args: argparse.Namespace) -> int:
    password = args.password
    if password is None:
        password = getpass.getpass("Password: ")
        if password != getpass.getpass("Repeat password: "):
            print("ERROR: passwords do not match", file=sys.stderr)
            return 1
    if not password:
        print("ERROR: password must not be empty", file=sys.stderr)
        return 1

    print(hash_password(password))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fail2rest", description="REST API for fail2ban")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", help="Bind address (default: FAIL2REST_HOST)")
    serve_parser.add_argument("--port", type=int, help="Bind port (default: FAIL2REST_PORT)")
    serve_parser.set_defaults(func=serve)

    hash_parser = subparsers.add_parser(
        "hash-password", help="Print an argon2 hash for the FAIL2REST_USERS setting"
    )
    hash_parser.add_argument("--password", help="Password to hash (prompted if omitted)")
    hash_parser.set_defaults(func=hash_password_command)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
