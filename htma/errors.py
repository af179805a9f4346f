"""
HTMA Error Types

Configuration problems fail fast at load. Per-measurement problems never
raise; they degrade to documented fallbacks inside each engine.
"""


class HTMAError(Exception):
    """Base class for all interpretation-core errors."""


class RangeConfigurationError(HTMAError):
    """Malformed reference range, bad version id, or duplicate version."""


class SemanticsIntegrityError(HTMAError):
    """Locked health score semantics failed the load-time self-check."""


class VersionNotFoundError(HTMAError, KeyError):
    """Unknown reference range version id."""

    def __init__(self, version_id: str):
        self.version_id = version_id
        super().__init__(f"Reference range version not found: {version_id}")

    def __str__(self) -> str:
        return self.args[0]


class GuardrailsCanaryError(HTMAError):
    """Development-only: generated text carries no safe-language marker."""


class AnnotationValidationError(HTMAError, ValueError):
    """Practitioner annotation failed validation."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))
