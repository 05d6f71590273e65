# ruff: noqa: INP001
"""Pytest configuration shared across backend tests."""

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are built at import time; pin deterministic values regardless of shell env.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["OPS_AUTH_TOKEN"] = "test-ops-token-0123456789-0123456789-0123456789-xyz"
os.environ["LIFECYCLE_TIMEZONE"] = "UTC"
os.environ["LIFECYCLE_LEASE_ENABLED"] = "true"
