"""Root conftest: test settings must be in the environment before diet_chat.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

_ENV_FILE = Path(__file__).resolve().parent / ".env.test"

# Settings() requires the Postgres credentials even though tests never connect
_FALLBACKS = {
    "POSTGRES_USER": "diet_chat",
    "POSTGRES_PASSWORD": "diet_chat",
    "POSTGRES_DB": "diet_chat_test",
    "JWT_SECRET": "diet-chat-test-secret-0123456789abcdef",
}


def _load_env_file(path: Path) -> dict[str, str]:
    values: dict[str, str] = {}
    if not path.exists():
        return values
    for raw in path.read_text().splitlines():
        line = raw.strip()
        if line and not line.startswith("#") and "=" in line:
            name, _, value = line.partition("=")
            values[name.strip()] = value.strip()
    return values


for _name, _value in {**_FALLBACKS, **_load_env_file(_ENV_FILE)}.items():
    os.environ.setdefault(_name, _value)
