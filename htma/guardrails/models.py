"""
Interpretation Guardrails Models

Version: 1.0.0
"""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, Field


class Audience(str, Enum):
    CONSUMER = "consumer"
    PRACTITIONER = "practitioner"


class Channel(str, Enum):
    """Boundary the text is about to cross."""
    UI = "ui"
    PDF = "pdf"
    API = "api"
    STORAGE = "storage"


class GuardrailsEvidence(BaseModel):
    """Supporting signals from the deterministic engines."""
    abnormal_minerals: Tuple[str, ...] = ()
    abnormal_ratios: Tuple[str, ...] = ()
    trends: Tuple[str, ...] = ()
    flags: Tuple[str, ...] = ()

    class Config:
        frozen = True

    @property
    def total(self) -> int:
        return len(self.abnormal_minerals) + len(self.abnormal_ratios) + len(self.trends) + len(self.flags)


class GuardrailsContext(BaseModel):
    audience: Audience = Audience.CONSUMER
    channel: Channel = Channel.UI
    evidence: Optional[GuardrailsEvidence] = Field(
        default=None,
        description="None = not supplied; an empty object forces the limited-data prefix"
    )

    class Config:
        frozen = True


class GuardrailsResult(BaseModel):
    ok: bool = True
    version: str
    reviewed_date: str
    audience: Audience
    channel: Channel
    removed_count: int = 0
    insights: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = Field(
        default=(),
        description="Always ends with exactly one channel disclaimer"
    )
    notes: Optional[Tuple[str, ...]] = Field(
        default=None,
        description="Action trace, practitioner audience only"
    )

    class Config:
        frozen = True
