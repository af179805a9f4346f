"""
Reference Range API Endpoints

FastAPI router for versioned reference ranges.

Endpoints:
- GET  /api/v1/ranges/health            - Module health check
- GET  /api/v1/ranges/versions          - All versions, newest first
- GET  /api/v1/ranges/active            - The active version
- GET  /api/v1/ranges/versions/{id}     - One version and its history
- POST /api/v1/ranges/versions          - Author a new (inactive) version
- POST /api/v1/ranges/versions/{id}/activate
- GET  /api/v1/ranges/compare           - Compare two versions
- POST /api/v1/ranges/migration-check   - Should an analysis migrate?

Version: ranges_v1
"""

from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ..deps import get_registry
from ..errors import RangeConfigurationError, VersionNotFoundError
from .models import (
    MigrationRecommendation,
    MineralRange,
    RangeChange,
    RatioRange,
    ReferenceRangeVersion,
    VersionComparison,
)
from .registry import ReferenceRangeRegistry
from .versioning import compare_versions, format_version_display, should_migrate_analysis


router = APIRouter(
    prefix="/api/v1/ranges",
    tags=["ranges"]
)


class CreateVersionRequest(BaseModel):
    """Request model for authoring a range version."""
    version: str
    name: str
    mineral_ranges: List[MineralRange]
    ratio_ranges: Optional[List[RatioRange]] = None
    effective_date: Optional[datetime] = None
    supersedes: Optional[str] = None
    changes: List[RangeChange] = Field(default_factory=list)
    created_by: str = "system"
    notes: Optional[str] = None


class MigrationCheckRequest(BaseModel):
    current_version: str
    target_version: str
    values: Dict[str, float] = Field(..., description="Mineral symbol -> value")


def _get_or_404(registry: ReferenceRangeRegistry, version_id: str) -> ReferenceRangeVersion:
    try:
        return registry.get(version_id)
    except VersionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ============================================================
# HEALTH CHECK
# ============================================================

@router.get("/health")
def ranges_health(registry: ReferenceRangeRegistry = Depends(get_registry)):
    active = registry.active()
    return {
        "status": "ok" if active else "degraded",
        "module": "ranges",
        "version": "ranges_v1",
        "active_version": active.version if active else None,
        "version_count": len(registry),
    }


# ============================================================
# VERSIONS
# ============================================================

@router.get("/versions")
def list_versions(registry: ReferenceRangeRegistry = Depends(get_registry)):
    return {
        "versions": [
            {
                "version": v.version,
                "display": format_version_display(v),
                "effective_date": v.effective_date.isoformat(),
                "is_active": v.is_active,
                "deprecated_at": v.deprecated_at.isoformat() if v.deprecated_at else None,
            }
            for v in registry.versions()
        ]
    }


@router.get("/active", response_model=ReferenceRangeVersion)
def get_active_version(registry: ReferenceRangeRegistry = Depends(get_registry)):
    active = registry.active()
    if active is None:
        raise HTTPException(status_code=404, detail="No active reference range version")
    return active


@router.get("/versions/{version_id}")
def get_version(version_id: str, registry: ReferenceRangeRegistry = Depends(get_registry)):
    version = _get_or_404(registry, version_id)
    return {
        "version": version,
        "history": [v.version for v in registry.history(version_id)],
    }


@router.post("/versions", response_model=ReferenceRangeVersion)
def create_version(request: CreateVersionRequest, registry: ReferenceRangeRegistry = Depends(get_registry)):
    """
    Author a new version. It stays inactive until explicitly activated.
    """
    try:
        return registry.create_version(**request.model_dump(exclude_none=False))
    except RangeConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/versions/{version_id}/activate", response_model=ReferenceRangeVersion)
def activate_version(version_id: str, registry: ReferenceRangeRegistry = Depends(get_registry)):
    try:
        return registry.activate(version_id)
    except VersionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ============================================================
# COMPARISON / MIGRATION
# ============================================================

@router.get("/compare", response_model=VersionComparison)
def compare(
    from_version: str = Query(...),
    to_version: str = Query(...),
    registry: ReferenceRangeRegistry = Depends(get_registry),
):
    return compare_versions(_get_or_404(registry, from_version), _get_or_404(registry, to_version))


@router.post("/migration-check", response_model=MigrationRecommendation)
def migration_check(request: MigrationCheckRequest, registry: ReferenceRangeRegistry = Depends(get_registry)):
    return should_migrate_analysis(
        _get_or_404(registry, request.current_version),
        _get_or_404(registry, request.target_version),
        request.values,
    )
