"""
Interactive sign-in from a terminal.

Opens the OAuth2 provider in the system browser, captures the redirect on a
loopback port, and prints who is signed in. The session secret can be reused
against the HTTP API through the X-Appwrite-Session header.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from core.auth.browser import LoopbackAuthSurface
from core.auth.session import SessionClient
from core.cloud.appwrite import create_cloud
from core.config.settings import ConfigurationError, get_settings


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Sign in to ReState through the browser")
    parser.add_argument("--host", default="127.0.0.1", help="Loopback address for the OAuth redirect")
    parser.add_argument("--port", type=int, default=8765, help="Loopback port for the OAuth redirect")
    parser.add_argument("--timeout", type=float, default=300.0, help="Seconds to wait for the browser")
    parser.add_argument("--show-secret", action="store_true", help="Print the session secret after signing in")
    return parser.parse_args(argv)


async def run(sessions: SessionClient, show_secret: bool = False) -> int:
    result = await sessions.login_result()
    if not result.ok:
        print(f"Login failed ({result.kind.value}): {result.message}", file=sys.stderr)
        return 1

    user = await sessions.get_current_user()
    if user is None:
        print("Signed in, but the account could not be loaded.", file=sys.stderr)
        return 1

    print(f"Signed in as {user.name or user.id} <{user.email or 'no email'}>")
    if show_secret:
        print(result.value["secret"])
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "WARNING").upper())

    try:
        settings = get_settings()
    except ConfigurationError as e:
        print(e, file=sys.stderr)
        return 2

    cloud = create_cloud(settings)
    surface = LoopbackAuthSurface(host=args.host, port=args.port, timeout=args.timeout)
    sessions = SessionClient(cloud.identity, surface, settings, exchange=cloud.exchange)
    return asyncio.run(run(sessions, args.show_secret))


if __name__ == "__main__":
    sys.exit(main())
