"""
HTMA Interpretation API Server Entry Point v1.0.0

Loads the canonical reference ranges once at startup and mounts the
ranges, guardrails and analysis routers.

Run:
  uvicorn main:app --host 0.0.0.0 --port $PORT
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from htma import __version__
from htma.admin import router as analysis_router
from htma.config import HTMA_ENV, RANGES_FILE
from htma.guardrails import INTERPRETATION_GUARDRAILS_VERSION, guardrails_router
from htma.oxidation import OXIDATION_ENGINE_VERSION
from htma.ranges import ranges_router
from htma.ranges.registry import ReferenceRangeRegistry, load_default_registry
from htma.scoring import HEALTH_SCORE_SEMANTICS_VERSION
from htma.shared.versions import ANALYSIS_ENGINE_VERSION, PROMPT_VERSION, REFERENCE_STANDARD
from htma.snapshot import SnapshotStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("htma.server")


def create_app(
    registry: Optional[ReferenceRangeRegistry] = None,
    store: Optional[SnapshotStore] = None,
) -> FastAPI:
    app = FastAPI(
        title="HTMA Interpretation API",
        description="Deterministic interpretation of hair-tissue mineral analysis",
        version=__version__,
    )

    # ============================================
    # CORS Configuration
    # ============================================
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Fatal at startup on malformed ranges
    app.state.registry = registry if registry is not None else load_default_registry(RANGES_FILE)
    app.state.store = store if store is not None else SnapshotStore()

    app.include_router(ranges_router)
    app.include_router(guardrails_router)
    app.include_router(analysis_router)

    # ============================================
    # Core Endpoints
    # ============================================
    @app.get("/")
    def root():
        active = app.state.registry.active()
        return {
            "service": "HTMA Interpretation API",
            "version": __version__,
            "status": "operational",
            "environment": HTMA_ENV,
            "active_range_version": active.version if active else None,
        }

    @app.get("/health")
    def health():
        return {"status": "healthy", "version": __version__}

    @app.get("/version")
    def version():
        return {
            "api_version": __version__,
            "engine_version": ANALYSIS_ENGINE_VERSION,
            "prompt_version": PROMPT_VERSION,
            "semantics_version": HEALTH_SCORE_SEMANTICS_VERSION,
            "guardrails_version": INTERPRETATION_GUARDRAILS_VERSION,
            "oxidation_version": OXIDATION_ENGINE_VERSION,
            "reference_standard": REFERENCE_STANDARD,
        }

    logger.info(f"HTMA API v{__version__} ready ({len(app.state.registry)} range version(s) loaded)")
    return app


app = create_app()


# For local development
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
