"""
System / health API router.

Handles the root endpoint and health probes.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.database import get_db
from api.health import perform_full_health_check, perform_liveness_check
from api.middleware import get_request_id
from legsearch import __version__

router = APIRouter(tags=["System"])

logger = logging.getLogger(__name__)


@router.get("/")
def root():
    """
    API root endpoint.

    Returns basic API information and available endpoint categories.
    """
    return {
        "name": "SailSmart Leg Search API",
        "version": __version__,
        "status": "operational",
        "docs": "/api/docs",
        "endpoints": {
            "health": "/api/health",
            "legs": "/api/legs/...",
            "regions": "/api/regions/...",
        }
    }


@router.get("/api/health")
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint for load balancers and orchestrators.

    Returns:
        - status: Overall health status (healthy/degraded/unhealthy)
        - timestamp: Current UTC timestamp
        - version: API version
        - components: Individual component health status
    """
    result = perform_full_health_check(db)
    result["request_id"] = get_request_id()
    return result


@router.get("/api/health/live")
def liveness_check():
    """Liveness probe: the process is up and serving requests."""
    return perform_liveness_check()
