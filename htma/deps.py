"""
FastAPI dependencies shared by the HTMA routers.

The registry lives on app.state; main.py loads it once at startup.
"""

import logging
import os
from typing import Optional

from fastapi import HTTPException, Request

from .config import is_development
from .ranges.registry import ReferenceRangeRegistry

logger = logging.getLogger("htma.deps")


def get_registry(request: Request) -> ReferenceRangeRegistry:
    return request.app.state.registry


def verify_practitioner_key(x_practitioner_api_key: Optional[str]) -> str:
    """
    Verify the practitioner API key from the X-Practitioner-API-Key header.

    Without HTMA_PRACTITIONER_API_KEY configured, practitioner access is
    only open in development. Raises 401 otherwise.
    """
    expected_key = os.getenv("HTMA_PRACTITIONER_API_KEY")

    if not expected_key:
        if is_development():
            return "dev_mode"
        logger.warning("Practitioner request refused: HTMA_PRACTITIONER_API_KEY not set")
        raise HTTPException(status_code=401, detail="Practitioner access is not configured")

    if not x_practitioner_api_key:
        raise HTTPException(status_code=401, detail="Missing X-Practitioner-API-Key header")

    if x_practitioner_api_key != expected_key:
        raise HTTPException(status_code=401, detail="Invalid practitioner API key")

    return x_practitioner_api_key
