"""
HTMA Canonical Hashing
Single source of truth for snapshot content hashes.
"""

import hashlib
import json
from enum import Enum
from typing import Any

from pydantic import BaseModel

# Fields excluded from content hashes (generated per construction)
VOLATILE_FIELDS = frozenset([
    "report_id",
    "generated_at",
    "created_at",
    "updated_at",
    "timestamp",
])


def canonicalize(obj: Any, exclude_volatile: bool = True) -> str:
    """
    Convert object (dicts, sequences, pydantic models) to a canonical JSON string.
    Same input always produces same output.
    """
    def _clean(o: Any) -> Any:
        if isinstance(o, BaseModel):
            return _clean(o.model_dump(mode="json"))
        if isinstance(o, dict):
            return {
                k: _clean(v)
                for k, v in sorted(o.items())
                if not (exclude_volatile and k in VOLATILE_FIELDS)
            }
        if isinstance(o, (list, tuple)):
            return [_clean(i) for i in o]
        if isinstance(o, Enum):
            return o.value
        if isinstance(o, float):
            return round(o, 10)
        return o

    cleaned = _clean(obj)
    return json.dumps(cleaned, sort_keys=True, separators=(',', ':'), ensure_ascii=True)


def canonicalize_and_hash(obj: Any, exclude_volatile: bool = True) -> str:
    """
    Returns: "sha256:<64-char-hex>"
    """
    canonical = canonicalize(obj, exclude_volatile)
    digest = hashlib.sha256(canonical.encode('utf-8')).hexdigest()
    return f"sha256:{digest}"


def verify_hash(obj: Any, expected_hash: str, exclude_volatile: bool = True) -> bool:
    return canonicalize_and_hash(obj, exclude_volatile) == expected_hash


def extract_hash_digest(full_hash: str) -> str:
    """
    "sha256:abc123..." -> "abc123..."
    """
    if full_hash.startswith("sha256:"):
        return full_hash[7:]
    return full_hash
