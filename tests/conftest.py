"""
pytest configuration for backfill tests.

Adds src directory to Python path for imports and clears backfill
environment variables so tests see only what they set.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

BACKFILL_ENV_VARS = [
    "POSTGRES_URL",
    "postgres_url",
    "IPFS_URL",
    "ipfs_url",
    "IPFS_AUTH",
    "ipfs_auth",
    "IPFS_TIMEOUT_SECONDS",
    "BACKFILL_CONCURRENCY",
    "BACKFILL_DRY_RUN",
    "LOG_DIR",
    "METRICS_PORT",
]


@pytest.fixture(autouse=True)
def clean_backfill_env(monkeypatch):
    """Remove backfill configuration inherited from the shell."""
    for name in BACKFILL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def app_data_hash():
    """A fixed 32 byte app data hash."""
    return bytes(range(32))


@pytest.fixture
def zero_hash():
    return bytes(32)
