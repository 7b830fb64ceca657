#!/usr/bin/env python3
"""
Vault auth service -- operator CLI.

Usage:
  python main.py serve                 run the public API and the internal verification endpoint
  python main.py purge-codes           delete expired one-time codes now
  python main.py verify-token TOKEN    print the user id behind an access token (exit 1 if rejected)

Environment variables: see core/config.py (SECRET_KEY, DATABASE_URL, SMTP_HOST, ...).
"""

import argparse
import asyncio
import sys

import uvicorn

from api.wiring import build_code_service, build_session_service, build_store
from core.config import get_settings
from core.errors import UnauthorizedError


async def _serve() -> None:
    """Run both listeners in one process; either one exiting stops both."""
    settings = get_settings()
    public = uvicorn.Server(uvicorn.Config("asgi:app", host=settings.host, port=settings.port))
    internal = uvicorn.Server(
        uvicorn.Config("asgi:internal_app", host=settings.internal_host, port=settings.internal_port)
    )
    tasks = [asyncio.create_task(public.serve()), asyncio.create_task(internal.serve())]
    await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    public.should_exit = True
    internal.should_exit = True
    await asyncio.gather(*tasks, return_exceptions=True)


def _purge_codes() -> int:
    settings = get_settings()
    store = build_store(settings)
    try:
        removed = build_code_service(settings, store).purge_expired_codes()
    finally:
        store.close()
    print(f"  Removed {removed} expired code(s).")
    return 0


def _verify_token(token: str) -> int:
    settings = get_settings()
    store = build_store(settings)
    try:
        user_id = build_session_service(settings, store).authenticate(token)
    except UnauthorizedError as exc:
        print(f"  [!] Token rejected: {exc.detail}")
        return 1
    finally:
        store.close()
    print(user_id)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Vault auth service")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("serve", help="Run the public and internal HTTP listeners")
    sub.add_parser("purge-codes", help="Delete expired one-time codes")
    verify = sub.add_parser("verify-token", help="Print the user id behind an access token")
    verify.add_argument("token")
    args = parser.parse_args(argv)

    if args.command == "serve":
        asyncio.run(_serve())
        return 0
    if args.command == "purge-codes":
        return _purge_codes()
    return _verify_token(args.token)


if __name__ == "__main__":
    sys.exit(main())
