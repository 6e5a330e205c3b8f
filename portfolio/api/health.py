"""
Portfolio Health Check Endpoints
Liveness, public client configuration, and database status.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from portfolio.api.deps import SettingsDep
from portfolio.core.rate_limit import RateLimitStandard
from portfolio.database import Database, get_database

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])

DatabaseDep = Annotated[Database, Depends(get_database)]


@router.get("/health")
async def health(database: DatabaseDep, config: SettingsDep) -> dict[str, Any]:
    """Liveness check. Never touches the network."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "connected" if database.is_connected else "disconnected",
        "email": "enabled" if config.email_enabled else "disabled",
    }


@router.get("/config")
async def client_config(config: SettingsDep, _: RateLimitStandard) -> dict[str, Any]:
    """Settings the browser client needs."""
    return {
        "allowedOrigins": config.allowed_origin_list,
        "logRequests": config.log_requests,
    }


@router.get("/db/health")
async def database_health(database: DatabaseDep) -> JSONResponse:
    """Ping the database; 503 when it is not reachable."""
    health = await database.health_check()
    if health["status"] != "healthy":
        logger.warning(f"Database health check reported {health['status']}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"success": False, "message": "Database connection failed", **health},
        )
    return JSONResponse(content={"success": True, **health})


@router.get("/db/status")
async def database_status(database: DatabaseDep) -> dict[str, Any]:
    return {"success": True, "data": database.get_status()}
