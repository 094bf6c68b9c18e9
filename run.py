#!/usr/bin/env python3
"""
codecoach quick launcher

Usage:
  python run.py run my_script.py                 # run a script, show suggestions
  python run.py run my_script.py --mode heuristic
  python run.py tips                             # learning reference cards
  python run.py init-config coach.yaml           # write a default config
"""

from pathlib import Path

from session.cli import app
from session.env import load_env_file


def main() -> None:
    # Provider API keys may live in a .env file next to this script.
    load_env_file(Path(__file__).parent / ".env")
    app()


if __name__ == "__main__":
    main()
