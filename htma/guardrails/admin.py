"""
Interpretation Guardrails API Endpoints

Endpoints:
- GET  /api/v1/guardrails/health  - Module health check
- GET  /api/v1/guardrails/policy  - The locked policy table
- POST /api/v1/guardrails/apply   - Sanitize narrative text for a boundary

Version: guardrails_v1
"""

from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from .disclaimer import FULL_DISCLAIMER, SHORT_DISCLAIMER
from .gate import (
    INTERPRETATION_GUARDRAILS_REVIEWED_DATE,
    INTERPRETATION_GUARDRAILS_VERSION,
    apply_guardrails,
)
from .models import Audience, Channel, GuardrailsContext, GuardrailsEvidence, GuardrailsResult
from .policy import describe_policy


router = APIRouter(
    prefix="/api/v1/guardrails",
    tags=["guardrails"]
)


class ApplyGuardrailsRequest(BaseModel):
    """Request model for sanitizing narrative text."""
    insights: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    audience: Audience = Audience.CONSUMER
    channel: Channel = Channel.API
    evidence: Optional[GuardrailsEvidence] = None


@router.get("/health")
def guardrails_health():
    return {
        "status": "ok",
        "module": "guardrails",
        "version": INTERPRETATION_GUARDRAILS_VERSION,
        "reviewed_date": INTERPRETATION_GUARDRAILS_REVIEWED_DATE,
    }


@router.get("/policy")
def get_policy():
    return {
        "version": INTERPRETATION_GUARDRAILS_VERSION,
        "rules": describe_policy(),
        "disclaimers": {
            "short": SHORT_DISCLAIMER,
            "full": FULL_DISCLAIMER,
        },
    }


@router.post("/apply", response_model=GuardrailsResult)
def apply(request: ApplyGuardrailsRequest):
    ctx = GuardrailsContext(
        audience=request.audience,
        channel=request.channel,
        evidence=request.evidence,
    )
    return apply_guardrails(request.insights, request.recommendations, ctx)
