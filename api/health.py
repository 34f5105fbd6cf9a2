"""
Health checks for the SailSmart leg search API.

Designed for liveness/readiness probes and load balancer health checks.
"""
import logging
from typing import Dict, Any, Optional
from datetime import datetime
from enum import Enum
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from api.config import settings
from legsearch import __version__
from legsearch.geo.regions import REGIONS

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    """Health check status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""
    name: str
    status: HealthStatus
    latency_ms: Optional[float] = None
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {"status": self.status.value}
        if self.latency_ms is not None:
            result["latency_ms"] = self.latency_ms
        if self.message:
            result["message"] = self.message
        if self.details:
            result["details"] = self.details
        return result


def check_database_health(db: Session) -> ComponentHealth:
    """
    Check database connectivity and whether the spatial RPCs are available.

    Returns:
        ComponentHealth with database status
    """
    start = datetime.utcnow()
    dialect = db.get_bind().dialect.name

    try:
        result = db.execute(text("SELECT 1")).scalar()
    except SQLAlchemyError as e:
        latency_ms = (datetime.utcnow() - start).total_seconds() * 1000
        logger.error(f"Database health check failed: {e}")
        return ComponentHealth(
            name="database",
            status=HealthStatus.UNHEALTHY,
            latency_ms=round(latency_ms, 2),
            message=f"Connection failed: {type(e).__name__}",
        )

    latency_ms = (datetime.utcnow() - start).total_seconds() * 1000
    if result != 1:
        return ComponentHealth(
            name="database",
            status=HealthStatus.UNHEALTHY,
            message="Unexpected query result",
        )

    # Without the PostgreSQL functions search still works, on the slower fallback path
    spatial_rpcs = dialect == "postgresql"
    return ComponentHealth(
        name="database",
        status=HealthStatus.HEALTHY if spatial_rpcs else HealthStatus.DEGRADED,
        latency_ms=round(latency_ms, 2),
        message=f"{dialect} connected",
        details={"spatial_rpcs": spatial_rpcs},
    )


def check_region_registry() -> ComponentHealth:
    """Check that the sailing region registry loaded."""
    if not REGIONS:
        return ComponentHealth(
            name="regions",
            status=HealthStatus.UNHEALTHY,
            message="No sailing regions loaded",
        )
    return ComponentHealth(
        name="regions",
        status=HealthStatus.HEALTHY,
        details={"count": len(REGIONS)},
    )


def perform_full_health_check(db: Session) -> Dict[str, Any]:
    """
    Run every component check and roll up an overall status.

    The overall status is the worst component status.
    """
    components = [check_database_health(db), check_region_registry()]

    if any(c.status == HealthStatus.UNHEALTHY for c in components):
        overall = HealthStatus.UNHEALTHY
    elif any(c.status == HealthStatus.DEGRADED for c in components):
        overall = HealthStatus.DEGRADED
    else:
        overall = HealthStatus.HEALTHY

    return {
        "status": overall.value,
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "version": __version__,
        "environment": settings.environment,
        "components": {c.name: c.to_dict() for c in components},
    }


def perform_liveness_check() -> Dict[str, Any]:
    """Simple check that the service process is alive."""
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }
