#!/usr/bin/env python
"""
Run Django management commands for Fandom Pulse with .env taking precedence.

A DATABASE_URL exported in the shell (often a stale localhost URL) would
otherwise win over the project's .env, because load_dotenv() never overrides
existing variables.

Usage:
    python scripts/run_manage.py <command> [args...]

Examples:
    python scripts/run_manage.py migrate
    python scripts/run_manage.py ingest_fleet --platform=tiktok
    python scripts/run_manage.py collect_trends --regional
    python scripts/run_manage.py discover_fandoms
"""

import os
import sys
from pathlib import Path

from dotenv import dotenv_values

PROJECT_ROOT = Path(__file__).resolve().parent.parent
os.chdir(PROJECT_ROOT)
sys.path.insert(0, str(PROJECT_ROOT))

# Variables where the .env value replaces whatever the shell exported
ENV_OVERRIDES = ("DATABASE_URL", "MONITOR_PROXY_URL")


def load_env_with_override():
    env_path = PROJECT_ROOT / ".env"
    if not env_path.exists():
        return

    env_vars = dotenv_values(env_path)
    for key in ENV_OVERRIDES:
        env_value = env_vars.get(key)
        if not env_value:
            continue
        current = os.environ.get(key, "")
        if current and current != env_value:
            print(f"Overriding shell {key} with .env value", file=sys.stderr)
        os.environ[key] = env_value


def main():
    load_env_with_override()
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "fandompulse.settings")

    from django.core.management import execute_from_command_line

    execute_from_command_line(["manage.py"] + sys.argv[1:])


if __name__ == "__main__":
    main()
