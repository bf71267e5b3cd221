#!/usr/bin/env python3
"""
Connect a Google account from the console and add its calendars.

Useful when the web callback is not reachable (e.g. a headless server).

Usage:
    python scripts/connect_account.py

Requirements:
    - GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and ENCRYPTION_KEY must be set in .env
"""
import argparse
import asyncio
import dataclasses
import os
import sys
from urllib.parse import parse_qs, urlsplit

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from calhub.calendar.oauth import GoogleOAuthClient
from calhub.calendar.setup import connect_google_account
from calhub.core.config import settings
from calhub.core.context import create_context
from calhub.core.database import close_database, init_database
from calhub.core.result import Err, Ok


def main():
    parser = argparse.ArgumentParser(description="Connect a Google account")
    parser.add_argument("--redirect-uri", default="http://localhost:8080/", help="Redirect URI registered for the client")
    args = parser.parse_args()

    match init_database(settings.database_url).and_then(create_context):
        case Err(error):
            print(f"Error: {error.message}")
            sys.exit(1)
        case Ok(ctx):
            pass

    oauth = GoogleOAuthClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=args.redirect_uri,
        timeout=settings.provider_timeout_seconds,
    )
    ctx = dataclasses.replace(ctx, oauth=oauth)

    match oauth.authorization_url():
        case Err(error):
            print(f"Error: {error.message}")
            sys.exit(1)
        case Ok(auth):
            pass

    print("=" * 60)
    print("Google Calendar Account Setup")
    print("=" * 60)
    print()
    print("Open this URL in a browser (on any machine):")
    print()
    print(auth.url)
    print()
    print("After authorizing, you'll be redirected to a localhost URL.")
    redirect_response = input("Paste the full redirect URL here: ").strip()

    query = parse_qs(urlsplit(redirect_response).query)
    code = query.get("code", [None])[0]
    state = query.get("state", [None])[0]
    if not code or state != auth.state:
        print("Error: redirect URL has no code or a mismatched state")
        close_database()
        sys.exit(1)

    try:
        result = asyncio.run(connect_google_account(ctx, code, auth.code_verifier))
    finally:
        close_database()

    match result:
        case Err(error):
            print(f"Error at step {error.step}: {error.message}")
            sys.exit(1)
        case Ok(setup):
            print()
            print("=" * 60)
            print(f"SUCCESS! Connected {setup.account_id}, {setup.added_count} calendar(s) added.")
            print("=" * 60)


if __name__ == "__main__":
    main()
