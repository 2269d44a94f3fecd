#!/usr/bin/env python3
"""Development scripts for the Crowd Ticketing platform."""

import subprocess
import sys


def start():
    """Start the development server."""
    subprocess.run([
        "uvicorn",
        "crowd_ticketing.main:app",
        "--host", "0.0.0.0",
        "--port", "3000",
        "--reload"
    ])


def worker():
    """Start a Celery worker with the beat scheduler embedded."""
    subprocess.run([
        "celery",
        "-A", "crowd_ticketing.tasks.celery_app:celery_app",
        "worker",
        "--beat",
        "--loglevel", "info"
    ])


def lint():
    """Run formatting check and type checking."""
    subprocess.run(["black", "--check", "crowd_ticketing/", "tests/"])
    subprocess.run(["mypy", "crowd_ticketing/"])


def format_code():
    """Format code with black."""
    subprocess.run(["black", "crowd_ticketing/", "tests/"])


def test():
    """Run the test suite."""
    sys.exit(subprocess.run(["pytest", "tests/"]).returncode)


def migrate():
    """Apply database migrations."""
    subprocess.run(["alembic", "upgrade", "head"])


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts.py <command>")
        print("Commands: start, worker, lint, format-code, test, migrate")
        sys.exit(1)

    command = sys.argv[1].replace("-", "_")
    if hasattr(sys.modules[__name__], command):
        getattr(sys.modules[__name__], command)()
    else:
        print(f"Unknown command: {sys.argv[1]}")
        sys.exit(1)
