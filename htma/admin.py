"""
HTMA Analysis API Endpoints

Endpoints:
- GET  /api/v1/analysis/health   - Pipeline health check
- POST /api/v1/analysis          - Run an analysis, return the snapshot
- POST /api/v1/analysis/delta    - Explain the score change between two analyses
- POST /api/v1/analysis/export   - Client or practitioner export of a snapshot

Version: analysis_v1
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, Field

from . import __version__
from .delta import ScoreDeltaExplanation
from .deps import get_registry, verify_practitioner_key
from .errors import RangeConfigurationError, VersionNotFoundError
from .guardrails import Audience, Channel
from .pipeline import AnalysisResult, explain_against_previous, run_analysis
from .ranges.registry import ReferenceRangeRegistry
from .snapshot import ClientExport, PatientInfo, ReportSnapshot, SnapshotStore
from .snapshot.export import export_for_client, export_for_practitioner


router = APIRouter(
    prefix="/api/v1/analysis",
    tags=["analysis"]
)


class AnalysisRequest(BaseModel):
    """Request model for running one analysis."""
    values: Dict[str, Optional[float]] = Field(..., description="Mineral symbol or name -> value")
    previous_values: Optional[Dict[str, Optional[float]]] = None
    insights: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    version_id: Optional[str] = None
    patient_name: Optional[str] = None
    test_date: Optional[str] = None
    is_practitioner_mode: bool = False
    user_id: Optional[str] = None


class DeltaRequest(BaseModel):
    previous_values: Dict[str, Optional[float]]
    current_values: Dict[str, Optional[float]]
    version_id: Optional[str] = None


class ExportRequest(BaseModel):
    snapshot: ReportSnapshot
    audience: Audience = Audience.CONSUMER
    channel: Channel = Channel.PDF
    user_id: Optional[str] = None


def get_store(request: Request) -> SnapshotStore:
    return request.app.state.store


def _resolve_errors(e: Exception) -> HTTPException:
    if isinstance(e, VersionNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


# ============================================================
# HEALTH CHECK
# ============================================================

@router.get("/health")
def analysis_health(
    registry: ReferenceRangeRegistry = Depends(get_registry),
    store: SnapshotStore = Depends(get_store),
):
    active = registry.active()
    return {
        "status": "ok" if active else "degraded",
        "module": "analysis",
        "version": __version__,
        "active_range_version": active.version if active else None,
        "persistence_enabled": store.enabled,
    }


# ============================================================
# ANALYSIS
# ============================================================

@router.post("", response_model=AnalysisResult)
def analyze(
    request: AnalysisRequest,
    registry: ReferenceRangeRegistry = Depends(get_registry),
    store: SnapshotStore = Depends(get_store),
):
    try:
        return run_analysis(
            registry,
            request.values,
            previous=request.previous_values,
            insights=request.insights,
            recommendations=request.recommendations,
            version_id=request.version_id,
            patient_info=PatientInfo(name=request.patient_name, test_date=request.test_date),
            is_practitioner_mode=request.is_practitioner_mode,
            user_id=request.user_id,
            store=store,
        )
    except (VersionNotFoundError, RangeConfigurationError) as e:
        raise _resolve_errors(e)


@router.post("/delta", response_model=ScoreDeltaExplanation)
def explain_delta(request: DeltaRequest, registry: ReferenceRangeRegistry = Depends(get_registry)):
    try:
        version = registry.resolve(request.version_id)
    except (VersionNotFoundError, RangeConfigurationError) as e:
        raise _resolve_errors(e)
    return explain_against_previous(request.previous_values, request.current_values, version)


@router.post("/export", response_model=ClientExport)
def export(
    request: ExportRequest,
    x_practitioner_api_key: Optional[str] = Header(None, alias="X-Practitioner-API-Key"),
):
    """
    Re-applies guardrails at the export boundary. Consumer exports keep
    only client-visible annotations. Practitioner exports carry unredacted
    text and internal notes, so they require X-Practitioner-API-Key.
    """
    if request.audience == Audience.PRACTITIONER:
        verify_practitioner_key(x_practitioner_api_key)
        return export_for_practitioner(request.snapshot, request.channel, request.user_id)
    return export_for_client(request.snapshot, request.channel, request.user_id)
