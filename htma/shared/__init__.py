"""Shared helpers: canonical hashing and version stamps."""

from .hashing import canonicalize, canonicalize_and_hash, verify_hash, extract_hash_digest
from .versions import (
    APP_VERSION,
    ANALYSIS_ENGINE_VERSION,
    PROMPT_VERSION,
    AI_MODEL,
    REFERENCE_STANDARD,
)

__all__ = [
    "canonicalize",
    "canonicalize_and_hash",
    "verify_hash",
    "extract_hash_digest",
    "APP_VERSION",
    "ANALYSIS_ENGINE_VERSION",
    "PROMPT_VERSION",
    "AI_MODEL",
    "REFERENCE_STANDARD",
]
