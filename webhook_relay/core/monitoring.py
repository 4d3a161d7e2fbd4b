"""Health checks and monitoring endpoints"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from webhook_relay.api.dependencies import get_current_user_id, get_monitoring_service
from webhook_relay.config.database import get_db, ping_db
from webhook_relay.schemas.webhook_config import WebhookHealthResponse
from webhook_relay.services.monitoring.monitoring_service import MonitoringService

logger = logging.getLogger(__name__)
health_router = APIRouter()


@health_router.get("")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "webhook-relay"}


@health_router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Detailed health check with dependencies"""
    checks = {
        "api": "healthy",
        "database": "unknown",
        "overall": "unknown"
    }

    try:
        ping_db(db)
        checks["database"] = "healthy"
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        checks["database"] = f"unhealthy: {str(e)}"

    if all(status == "healthy" for key, status in checks.items() if key != "overall"):
        checks["overall"] = "healthy"
    else:
        checks["overall"] = "degraded"

    return checks


@health_router.get("/webhooks", response_model=WebhookHealthResponse)
async def webhook_health(
    user_id: str = Depends(get_current_user_id),
    monitoring: MonitoringService = Depends(get_monitoring_service)
):
    """Status counts across all webhooks plus the latest downstream errors"""
    return monitoring.get_health_status()
