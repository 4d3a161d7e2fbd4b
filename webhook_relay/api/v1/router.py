"""
API router setup
Webhook management routes, all JWT-authenticated
"""
from fastapi import APIRouter

from webhook_relay.api.v1 import webhooks

api_router = APIRouter()

api_router.include_router(webhooks.router)


@api_router.get("/", tags=["Info"])
async def api_info():
    """API information and available endpoints."""
    return {
        "version": "1.0",
        "authentication": {
            "management": "JWT Bearer token required",
            "ingestion": "Public, addressed by /{user_id}/webhook/{webhook_id}"
        }
    }
