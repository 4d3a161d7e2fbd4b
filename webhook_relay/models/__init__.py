# webhook_relay/models/__init__.py
from .base import Base
from .webhook_config import WebhookConfig, WebhookStatus, DEFAULT_REQUIRED_PARAMETERS

__all__ = [
    "Base",
    "WebhookConfig",
    "WebhookStatus",
    "DEFAULT_REQUIRED_PARAMETERS",
]
