#!/usr/bin/env python3
"""Issue a ledger-recorded session token for an existing user.

Intended for operators (smoke tests, service accounts). The token is printed
to stdout and is valid until logout, logout-all or expiry.

Usage:
    python scripts/issue_token.py --username alice
    python scripts/issue_token.py --username alice --show-claims

Requires JWT_SECRET_KEY and DATABASE_URL in the environment (or .env).
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from sessionauth.core import async_session_maker, engine  # noqa: E402
from sessionauth.services.errors import IssuanceError  # noqa: E402
from sessionauth.services.ledger import SqlTokenLedger  # noqa: E402
from sessionauth.services.lifecycle import build_token_lifecycle  # noqa: E402
from sessionauth.services.user import UserService  # noqa: E402


async def _issue(username: str, show_claims: bool) -> int:
    try:
        async with async_session_maker() as db:
            user = await UserService(db).get_by_username(username)
            if user is None:
                print(f"ERROR: no user named {username!r}", file=sys.stderr)
                return 1

            lifecycle = build_token_lifecycle(SqlTokenLedger(db))
            try:
                token = await lifecycle.issue(user)
            except IssuanceError as e:
                print(f"ERROR: {e}", file=sys.stderr)
                return 1

            print(token)
            if show_claims:
                claims = lifecycle.extract_claims(token)
                if claims is not None:
                    print(json.dumps(claims.to_dict(), indent=2), file=sys.stderr)
            return 0
    finally:
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="Issue a session token for a user")
    parser.add_argument("--username", required=True, help="Username to issue the token for")
    parser.add_argument(
        "--show-claims",
        action="store_true",
        help="Print the token's claims to stderr",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(_issue(args.username, args.show_claims)))


if __name__ == "__main__":
    main()
