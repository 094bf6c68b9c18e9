"""Load a .env file into the process environment."""

from __future__ import annotations

import os
from pathlib import Path


def load_env_file(env_path: str | Path) -> int:
    """Set KEY=VALUE pairs from ``env_path`` that aren't already set.

    Returns the number of variables added.
    """
    env_path = Path(env_path)
    if not env_path.exists():
        return 0
    added = 0
    with open(env_path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                if key and value and key not in os.environ:
                    os.environ[key] = value
                    added += 1
    return added
