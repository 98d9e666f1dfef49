"""JSON service for the publications dashboard.

Provides two endpoints:
- ``GET /api/dashboard/csv``: the publication CSV as a JSON array
- ``GET /api/health``: liveness payload for load-balancer checks
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from .config import (
    CSV_ENDPOINT,
    HEALTH_ENDPOINT,
    NO_CACHE_HEADERS,
    UPSTREAM_ERROR_MESSAGE,
)
from .csv_source import load_publication_rows

logger = logging.getLogger(__name__)


def create_api(
    source: str | Path | None = None, s3_client: Optional[Any] = None
) -> FastAPI:
    """Build the FastAPI app; ``source`` and ``s3_client`` are injectable."""
    api = FastAPI(
        title="Publications Dashboard API",
        description="CSV proxy and health check for the publications dashboard",
        version="1.0.0",
    )

    @api.get(CSV_ENDPOINT)
    def publications_csv():
        """Fetch the CSV object and return its rows as JSON."""
        try:
            rows = load_publication_rows(source, s3_client=s3_client)
        except Exception as exc:
            logger.error("Error fetching CSV from storage: %s", exc)
            return JSONResponse({"error": UPSTREAM_ERROR_MESSAGE}, status_code=500)
        return JSONResponse(rows)

    @api.get(HEALTH_ENDPOINT)
    async def health():
        """Health check; touches no dependencies so it always answers fast."""
        return JSONResponse(
            {
                "status": "healthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            headers=NO_CACHE_HEADERS,
        )

    return api
