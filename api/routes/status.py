"""
api/routes/status.py -- Authenticated platform status.

Routes:
  GET /api/status   -- service banner, caller's token claims, feature flags
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from api.models import StatusResponse
from auth.dependencies import get_current_claims
from auth.models import Claims
from core.features import feature_flags

router = APIRouter()

SERVICE_BANNER = "Very Secretive Software INC API"


@router.get("/status", response_model=StatusResponse)
async def status(claims: Claims = Depends(get_current_claims)) -> StatusResponse:
    """Return the service banner, the caller's identity claims, and the feature flag table."""
    return StatusResponse(
        message=SERVICE_BANNER,
        user=claims.to_dict(),
        features=feature_flags(),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
