"""
HTMA Runtime Configuration
==========================
Environment-driven settings, read once at import.

Variables:
- HTMA_ENV                  production | development (development enables the guardrails canary)
- DATABASE_URL              Postgres DSN for the snapshot store (unset = persistence off)
- HTMA_PERSISTENCE_ENABLED  kill switch for the snapshot store
- HTMA_RANGES_FILE          alternate canonical reference range table
- HTMA_LOG_LEVEL            level for the "htma" logger tree
- HTMA_PRACTITIONER_API_KEY key required for practitioner exports (unset = development only)
"""

import os
from pathlib import Path

DATA_DIR = Path(__file__).parent / "data"
DEFAULT_RANGES_FILE = DATA_DIR / "reference_ranges_v1_0_0.json"

HTMA_ENV = os.getenv("HTMA_ENV", "production").lower()
DATABASE_URL = os.getenv("DATABASE_URL")
PERSISTENCE_ENABLED = os.getenv("HTMA_PERSISTENCE_ENABLED", "true").lower() == "true"
RANGES_FILE = Path(os.getenv("HTMA_RANGES_FILE", str(DEFAULT_RANGES_FILE)))
LOG_LEVEL = os.getenv("HTMA_LOG_LEVEL", "INFO").upper()


def is_development() -> bool:
    """True when the safe-language canary should run."""
    return os.getenv("HTMA_ENV", HTMA_ENV).lower() == "development"
