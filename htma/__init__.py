"""
HTMA Interpretation Core
========================
Deterministic interpretation of hair-tissue mineral analysis (HTMA) results.

Pipeline (leaves first):
1. ranges     - versioned reference ranges, status classification
2. scoring    - weighted Health Score and locked score semantics
3. oxidation  - rule-based oxidation pattern classification
4. delta      - attribution of a score change to named drivers
5. guardrails - content-safety gate for any narrative text
6. snapshot   - immutable report snapshot, annotations, audit trail

This package MUST NOT:
- Diagnose conditions
- Predict outcomes
- Author narrative text (it only filters what reaches it)

Version: 1.0.0
"""

import logging

from .config import LOG_LEVEL

logging.getLogger("htma").setLevel(LOG_LEVEL)

__version__ = "1.0.0"
