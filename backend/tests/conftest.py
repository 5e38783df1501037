# ruff: noqa: INP001
"""Pytest configuration shared across backend tests."""

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are read at import time; pin deterministic values regardless of the
# shell env. Tests build their own in-memory engines, so the module-level
# engine only needs a driver that is always installed alongside the tests.
os.environ["AUTH_MODE"] = "local"
os.environ["LOCAL_AUTH_TOKEN"] = "test-local-token-0123456789-0123456789-0123456789x"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
