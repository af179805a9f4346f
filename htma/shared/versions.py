"""
Version stamps carried by every output artifact.

A stored snapshot is only meaningful together with these values.
"""

APP_VERSION = "1.0.0"
ANALYSIS_ENGINE_VERSION = "1.0.0"
AI_MODEL = "Gemini 1.5 Pro"
PROMPT_VERSION = "1.2.0"
REFERENCE_STANDARD = "TEI (Trace Elements Inc.)"
