# ===== webhook_relay/models/webhook_config.py =====
import enum
import uuid

from sqlalchemy import Column, String, DateTime, JSON, Integer, Float, Text, Index, Uuid
from sqlalchemy.sql import func

from webhook_relay.models.base import Base

DEFAULT_REQUIRED_PARAMETERS = ["campaign_name", "campaign_id", "recording_url"]


class WebhookStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ERROR = "error"


class WebhookConfig(Base):
    __tablename__ = "webhook_configs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Ownership
    user_id = Column(String(128), nullable=False, index=True)
    workspace_id = Column(String(128), nullable=False, index=True)
    webhook_id = Column(String(64), nullable=False, unique=True, index=True)

    name = Column(String(200), nullable=False)
    description = Column(Text, default="")

    # Parameters selected during onboarding
    selected_parameters = Column(JSON, nullable=False, default=list)
    # Parameters every inbound payload must carry
    required_parameters = Column(
        JSON, nullable=False, default=lambda: list(DEFAULT_REQUIRED_PARAMETERS)
    )

    # Downstream workflow binding (never returned to clients)
    n8n_workflow_id = Column(String(128), nullable=False)
    n8n_webhook_url = Column(String(500), nullable=False)

    # Branded URL handed out to clients
    public_webhook_url = Column(String(500), nullable=False)

    # Delivery statistics
    total_calls = Column(Integer, nullable=False, default=0)
    successful_calls = Column(Integer, nullable=False, default=0)
    failed_calls = Column(Integer, nullable=False, default=0)
    consecutive_failures = Column(Integer, nullable=False, default=0)
    last_call_at = Column(DateTime(timezone=True))
    last_error_at = Column(DateTime(timezone=True))
    last_error = Column(String(1000))
    average_response_time = Column(Float, nullable=False, default=0.0)  # milliseconds

    status = Column(String(20), nullable=False, default=WebhookStatus.ACTIVE.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('ix_webhook_configs_user_workspace', 'user_id', 'workspace_id'),
    )

    def stats_dict(self) -> dict:
        return {
            "total_calls": self.total_calls or 0,
            "successful_calls": self.successful_calls or 0,
            "failed_calls": self.failed_calls or 0,
            "consecutive_failures": self.consecutive_failures or 0,
            "last_call_at": self.last_call_at,
            "last_error_at": self.last_error_at,
            "last_error": self.last_error,
            "average_response_time": self.average_response_time or 0.0,
        }

    def to_dict(self) -> dict:
        """Full row as a dict, downstream fields included."""
        return {
            "id": str(self.id) if self.id else None,
            "user_id": self.user_id,
            "workspace_id": self.workspace_id,
            "webhook_id": self.webhook_id,
            "name": self.name,
            "description": self.description,
            "selected_parameters": list(self.selected_parameters or []),
            "required_parameters": list(self.required_parameters or []),
            "n8n_workflow_id": self.n8n_workflow_id,
            "n8n_webhook_url": self.n8n_webhook_url,
            "public_webhook_url": self.public_webhook_url,
            "stats": self.stats_dict(),
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self):
        return f"<WebhookConfig {self.webhook_id} user={self.user_id} status={self.status}>"
