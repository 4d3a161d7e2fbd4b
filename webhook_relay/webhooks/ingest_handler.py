# webhook_relay/webhooks/ingest_handler.py
"""Public ingestion endpoint for call-tracking platforms"""
import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from webhook_relay.api.dependencies import get_webhook_service
from webhook_relay.core.errors import MissingParametersError, WebhookNotFoundError
from webhook_relay.services.webhook.webhook_service import WebhookService

router = APIRouter()
logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


class InvalidPayloadError(ValueError):
    pass


async def read_payload(request: Request) -> dict:
    """
    Decode the request body. Platforms post either JSON or form fields.

    Raises:
        InvalidPayloadError: Malformed JSON, a JSON body that is not an object,
            or a form carrying a file
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(FORM_CONTENT_TYPES):
        form_data = await request.form()
        payload = {}
        for key, value in form_data.multi_items():
            if not isinstance(value, str):
                raise InvalidPayloadError("File uploads are not supported")
            payload[key] = value
        return payload

    raw = await request.body()
    if not raw.strip():
        return {}

    try:
        payload = json.loads(raw)
    except ValueError:
        raise InvalidPayloadError("Invalid JSON payload")

    if not isinstance(payload, dict):
        raise InvalidPayloadError("Payload must be a JSON object")

    return payload


@router.post("/{user_id}/webhook/{webhook_id}")
async def handle_webhook_request(
    user_id: str,
    webhook_id: str,
    request: Request,
    service: WebhookService = Depends(get_webhook_service)
):
    """Relay a call-tracking payload to the owner's workflow"""
    try:
        payload = await read_payload(request)
    except InvalidPayloadError as e:
        return JSONResponse(status_code=400, content={"success": False, "error": str(e)})

    try:
        result = await service.process_webhook_request(
            user_id,
            webhook_id,
            payload,
            correlation_id=getattr(request.state, "correlation_id", None)
        )
    except MissingParametersError as e:
        return JSONResponse(status_code=400, content={"success": False, "error": e.message})
    except WebhookNotFoundError:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": "Webhook not found or inactive"}
        )

    # Anything else is left to the global error handlers
    return result
