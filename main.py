#!/usr/bin/env python3
"""
AuthNest -- email/password and Google sign-in in front of a members-only page.

Usage:
  python main.py
  python main.py --port 8080
  python main.py --host 0.0.0.0 --reload

Environment variables (or .env):
  SESSION_SECRET                        Signs session cookies. At least 32 characters.
                                        Optional when DEBUG=true.
  DATABASE_URL                          Any SQLAlchemy URL. Overrides the DB_* variables.
  DB_USER DB_PASSWORD DB_HOST DB_PORT DB_DATABASE
                                        PostgreSQL connection settings.
  GOOGLE_CLIENT_ID GOOGLE_CLIENT_SECRET Enables "Sign in with Google".
  GOOGLE_CALLBACK_URL                   Override for the OAuth redirect URI,
                                        e.g. http://localhost:3000/auth/google/page
"""

import argparse

import uvicorn

from core.config import get_settings


def main() -> None:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="authnest",
        description="Run the AuthNest web server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--host",
        default=settings.host,
        help=f"Interface to bind (default: {settings.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Port to listen on (default: {settings.port})",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change (development only)",
    )
    args = parser.parse_args()

    print(f"Server running on port {args.port}")
    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
