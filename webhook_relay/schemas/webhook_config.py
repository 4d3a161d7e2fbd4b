"""
Pydantic schemas for webhook management requests and responses
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Literal, Optional
from datetime import datetime


# ============================================================================
# Request Schemas
# ============================================================================

class WebhookCreateRequest(BaseModel):
    """
    Schema for creating a webhook.
    Accepts both the dashboard's camelCase keys and snake_case.
    Presence of the required fields is checked by the route so that a
    missing field answers 400 rather than 422.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    workspace_id: Optional[str] = Field(None, alias="workspaceId")
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    selected_parameters: Optional[List[str]] = Field(None, alias="selectedParameters")


class WebhookUpdateRequest(BaseModel):
    """Only these fields can change after creation"""
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[Literal["active", "inactive", "error"]] = None


# ============================================================================
# Response Schemas
# ============================================================================

class WebhookStatsResponse(BaseModel):
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    consecutive_failures: int = 0
    last_call_at: Optional[datetime] = None
    last_error_at: Optional[datetime] = None
    last_error: Optional[str] = None
    average_response_time: float = 0.0


class WebhookConfigResponse(BaseModel):
    """Client-facing webhook; the downstream workflow binding is not part of it"""
    webhook_id: str
    user_id: str
    workspace_id: str
    name: str
    description: Optional[str] = None
    selected_parameters: List[str] = Field(default_factory=list)
    required_parameters: List[str] = Field(default_factory=list)
    public_webhook_url: str
    status: str
    stats: WebhookStatsResponse = Field(default_factory=WebhookStatsResponse)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WebhookEnvelope(BaseModel):
    success: bool = True
    data: WebhookConfigResponse


class WebhookListEnvelope(BaseModel):
    success: bool = True
    data: List[WebhookConfigResponse]


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class WebhookTestResponse(BaseModel):
    success: bool = True
    message: str = "Test webhook processed successfully"
    result: Any = None


# ============================================================================
# Monitoring
# ============================================================================

class HealthSummary(BaseModel):
    total: int
    active: int
    error: int
    inactive: int
    health_percentage: float


class HealthErrorEntry(BaseModel):
    webhook_id: str
    user_id: str
    name: str
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None


class WebhookHealthResponse(BaseModel):
    summary: HealthSummary
    errors: List[HealthErrorEntry]
