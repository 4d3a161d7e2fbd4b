"""
Webhook Management Routes
JWT-authenticated endpoints for creating and managing public webhooks
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status

from webhook_relay.api.dependencies import get_current_user_id, get_webhook_service
from webhook_relay.schemas.webhook_config import (
    MessageResponse,
    WebhookCreateRequest,
    WebhookEnvelope,
    WebhookListEnvelope,
    WebhookTestResponse,
    WebhookUpdateRequest,
)
from webhook_relay.services.webhook.webhook_service import WebhookService

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("", response_model=WebhookEnvelope, status_code=status.HTTP_201_CREATED)
async def create_webhook(
    body: WebhookCreateRequest,
    user_id: str = Depends(get_current_user_id),
    service: WebhookService = Depends(get_webhook_service)
):
    """Create a webhook and hand back its public URL."""
    if not body.workspace_id or not body.name or body.selected_parameters is None:
        raise HTTPException(status_code=400, detail="Missing required fields")

    webhook = await service.generate_webhook(
        user_id,
        body.workspace_id,
        body.name,
        body.description or "",
        body.selected_parameters
    )

    return {"success": True, "data": webhook}


@router.get("", response_model=WebhookListEnvelope)
async def get_user_webhooks(
    user_id: str = Depends(get_current_user_id),
    service: WebhookService = Depends(get_webhook_service)
):
    return {"success": True, "data": service.get_user_webhooks(user_id)}


@router.get("/{webhook_id}", response_model=WebhookEnvelope)
async def get_webhook(
    webhook_id: str,
    user_id: str = Depends(get_current_user_id),
    service: WebhookService = Depends(get_webhook_service)
):
    return {"success": True, "data": service.get_webhook_by_id(user_id, webhook_id)}


@router.put("/{webhook_id}", response_model=WebhookEnvelope)
async def update_webhook(
    webhook_id: str,
    updates: WebhookUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    service: WebhookService = Depends(get_webhook_service)
):
    """Update name, description or status. Other fields are ignored."""
    webhook = service.update_webhook(user_id, webhook_id, updates.model_dump(exclude_none=True))
    return {"success": True, "data": webhook}


@router.delete("/{webhook_id}", response_model=MessageResponse)
async def delete_webhook(
    webhook_id: str,
    user_id: str = Depends(get_current_user_id),
    service: WebhookService = Depends(get_webhook_service)
):
    service.delete_webhook(user_id, webhook_id)
    return {"success": True, "message": "Webhook deleted successfully"}


@router.post("/{webhook_id}/test", response_model=WebhookTestResponse)
async def test_webhook(
    webhook_id: str,
    request: Request,
    test_payload: Optional[Dict[str, Any]] = Body(None),
    user_id: str = Depends(get_current_user_id),
    service: WebhookService = Depends(get_webhook_service)
):
    """
    Send a test payload through the regular processing path.
    Errors are classified by the global handlers (400, 404, 502).
    """
    # Ownership check first
    service.get_webhook_by_id(user_id, webhook_id)

    result = await service.process_webhook_request(
        user_id,
        webhook_id,
        test_payload or {},
        correlation_id=getattr(request.state, "correlation_id", None)
    )

    return {
        "success": True,
        "message": "Test webhook processed successfully",
        "result": result
    }
