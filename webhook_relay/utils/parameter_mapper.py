# webhook_relay/utils/parameter_mapper.py
"""Shapes inbound call-tracking payloads into what the workflow engine expects"""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable

METADATA_SOURCE = "lum_webhook_api"


def map_parameters(payload: Dict[str, Any], selected_parameters: Iterable[str]) -> Dict[str, Any]:
    """
    Map an inbound webhook payload to the downstream format.

    Only parameters the owner selected are copied, so the platform never
    forwards fields nobody opted into. Selected keys missing from the
    payload are dropped, not defaulted.

    Args:
        payload: Inbound webhook payload
        selected_parameters: Parameter names selected during onboarding

    Returns:
        The mapped payload, always carrying a ``metadata`` block
    """
    mapped_payload: Dict[str, Any] = {}

    for param in selected_parameters:
        if param in payload:
            mapped_payload[param] = payload[param]

    # Downstream workflows read the campaign under its own key
    if mapped_payload.get("campaign_name"):
        mapped_payload["n8n_campaign_name"] = mapped_payload["campaign_name"]

    mapped_payload["metadata"] = {
        "processed_at": datetime.now(timezone.utc).isoformat(),
        "source": METADATA_SOURCE,
    }

    return mapped_payload
