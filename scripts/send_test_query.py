#!/usr/bin/env python3
"""
Dev helper: POST a sample support query to a running relay.

Usage
-----
# Basic — sample submission against localhost:3000
python scripts/send_test_query.py

# Custom submitter
python scripts/send_test_query.py --name "Ana" --email ana@example.com --query "Help"

# Target a different relay
python scripts/send_test_query.py --url http://staging.example.com

# Show the payload without sending
python scripts/send_test_query.py --dry-run

Environment / .env
------------------
PORT   Used for the default --url when set (default: 3000).
"""

import argparse
import json
import os
import sys
import textwrap
from pathlib import Path

import httpx
from dotenv import load_dotenv


def _print_response(response: httpx.Response) -> None:
    status = response.status_code
    symbol = "OK" if status == 200 else "FAIL"
    print(f"\n[{symbol}] HTTP {status}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)


def main() -> int:
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    load_dotenv(project_root / "backend" / ".env")

    default_url = f"http://localhost:{os.getenv('PORT', '3000')}"

    parser = argparse.ArgumentParser(
        prog="send_test_query.py",
        description="Send a sample support query to the relay's /send-email endpoint.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              python scripts/send_test_query.py
              python scripts/send_test_query.py --email not-an-email
              python scripts/send_test_query.py --url http://localhost:3000
        """),
    )
    parser.add_argument("--url", default=default_url, help=f"Relay base URL (default: {default_url})")
    parser.add_argument("--name", default="Test User", help='Submitter name (default: "Test User")')
    parser.add_argument("--email", default="test.user@example.com", help="Submitter email address")
    parser.add_argument(
        "--query",
        default="This is a test support query.\nPlease ignore.",
        help="Free-text query body",
    )
    parser.add_argument("--dry-run", action="store_true", help="Print the payload JSON without sending it.")

    args = parser.parse_args()

    payload = {"name": args.name, "email": args.email, "query": args.query}
    endpoint = f"{args.url.rstrip('/')}/send-email"

    print(f"Endpoint : {endpoint}")
    print(f"Name     : {args.name}")
    print(f"Email    : {args.email}")

    if args.dry_run:
        print("\n[DRY RUN] Payload:")
        print(json.dumps(payload, indent=2))
        return 0

    try:
        response = httpx.post(endpoint, json=payload, timeout=30)
    except httpx.ConnectError:
        print(
            f"\nERROR: Could not connect to {endpoint}\n"
            "Is the relay running? Start it with:\n"
            "  cd backend && python -m app.server",
            file=sys.stderr,
        )
        return 1
    except httpx.HTTPError as exc:
        print(f"\nERROR: {exc}", file=sys.stderr)
        return 1

    _print_response(response)
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
