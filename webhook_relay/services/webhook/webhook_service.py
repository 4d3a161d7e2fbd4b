# webhook_relay/services/webhook/webhook_service.py
import logging
import math
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx
from sqlalchemy import and_, case, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from webhook_relay.config.settings import get_settings
from webhook_relay.core.errors import (
    MissingParametersError,
    WebhookError,
    WebhookForwardError,
    WebhookNotFoundError,
)
from webhook_relay.models.webhook_config import WebhookConfig, WebhookStatus
from webhook_relay.utils.parameter_mapper import map_parameters

logger = logging.getLogger(__name__)

# Downstream binding, never returned to clients
HIDDEN_FIELDS = ("n8n_workflow_id", "n8n_webhook_url", "n8nWorkflowId", "n8nWebhookUrl")


def sanitize_webhook_config(webhook_config: Union[WebhookConfig, Mapping[str, Any]]) -> Dict[str, Any]:
    """Copy of a webhook config with the downstream workflow fields removed."""
    if isinstance(webhook_config, WebhookConfig):
        config = webhook_config.to_dict()
    else:
        config = dict(webhook_config)

    for key in HIDDEN_FIELDS:
        config.pop(key, None)

    return config


def _is_missing(value: Any) -> bool:
    # None, False, 0, NaN and "" count as missing
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (int, float)):
        return value == 0 or (isinstance(value, float) and math.isnan(value))
    return False


class WebhookService:
    """Creates public webhooks and relays their calls to the workflow engine"""

    UPDATABLE_FIELDS = ("name", "description", "status")

    def __init__(
            self,
            db: Session,
            http_client: httpx.AsyncClient,
            workflow_engine,
            base_url: Optional[str] = None,
            forward_timeout: Optional[float] = None,
            max_consecutive_failures: Optional[int] = None
    ):
        settings = get_settings()
        self.db = db
        self.http_client = http_client
        self.workflow_engine = workflow_engine
        self.base_url = (base_url or settings.WEBHOOK_BASE_URL).rstrip("/")
        self.forward_timeout = forward_timeout or settings.FORWARD_TIMEOUT_SECONDS
        self.max_consecutive_failures = max_consecutive_failures or settings.MAX_CONSECUTIVE_FAILURES

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def generate_webhook(
            self,
            user_id: str,
            workspace_id: str,
            name: str,
            description: str,
            selected_parameters: List[str]
    ) -> Dict[str, Any]:
        """
        Generate a new webhook for a user.

        Args:
            user_id: Owner of the webhook
            workspace_id: Workspace the webhook feeds
            name: Display name
            description: Free-form description
            selected_parameters: Parameters selected during onboarding

        Returns:
            The sanitized webhook configuration
        """
        try:
            webhook_id = str(uuid.uuid4())
            public_webhook_url = f"{self.base_url}/{user_id}/webhook/{webhook_id}"

            workflow = await self.workflow_engine.create_or_get_workflow(
                user_id, workspace_id, selected_parameters
            )

            webhook_config = WebhookConfig(
                user_id=user_id,
                workspace_id=workspace_id,
                webhook_id=webhook_id,
                name=name,
                description=description,
                selected_parameters=list(selected_parameters),
                n8n_workflow_id=workflow.id,
                n8n_webhook_url=workflow.webhook_url,
                public_webhook_url=public_webhook_url,
                status=WebhookStatus.ACTIVE.value,
            )

            self.db.add(webhook_config)
            self.db.commit()
            self.db.refresh(webhook_config)

        except Exception as e:
            self.db.rollback()
            logger.error("Error generating webhook", exc_info=e)
            raise WebhookError("Failed to generate webhook") from e

        logger.info(f"Generated webhook {webhook_id} for user {user_id}")
        return sanitize_webhook_config(webhook_config)

    # ------------------------------------------------------------------
    # Inbound processing
    # ------------------------------------------------------------------

    async def process_webhook_request(
            self,
            user_id: str,
            webhook_id: str,
            payload: Dict[str, Any],
            correlation_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Validate, map and forward an inbound webhook call.

        Raises:
            WebhookNotFoundError: Unknown webhook, or not active
            MissingParametersError: Required parameters absent from the payload
            WebhookForwardError: The workflow engine did not accept the payload
        """
        start_time = time.monotonic()

        try:
            webhook_config = self._find_webhook(user_id, webhook_id, status=WebhookStatus.ACTIVE.value)
            if not webhook_config:
                raise WebhookNotFoundError("Webhook not found or inactive")

            self.validate_required_parameters(payload, webhook_config.required_parameters or [])

            mapped_payload = map_parameters(payload, webhook_config.selected_parameters or [])

            response_data = await self._forward(
                webhook_config.n8n_webhook_url, webhook_id, mapped_payload, correlation_id
            )

            response_time_ms = (time.monotonic() - start_time) * 1000
            self.update_webhook_stats(webhook_config, True, response_time_ms)

        except Exception as e:
            # A failed lookup or flush leaves the session unusable until rolled back
            self.db.rollback()
            webhook_config = self._find_webhook(user_id, webhook_id)
            if webhook_config:
                self.update_webhook_stats(
                    webhook_config,
                    False,
                    0,
                    error_message=str(e),
                    forward_failure=isinstance(e, WebhookForwardError),
                )

            logger.error(f"Webhook processing error [{user_id}/{webhook_id}]: {e}")
            raise

        logger.info(f"Forwarded webhook {webhook_id} in {response_time_ms:.0f}ms")
        return {
            "success": True,
            "message": "Webhook processed successfully",
            "data": response_data,
        }

    @staticmethod
    def validate_required_parameters(payload: Mapping[str, Any], required_params: List[str]) -> None:
        """Raise MissingParametersError naming every required parameter that is missing."""
        missing_params = [param for param in required_params if _is_missing(payload.get(param))]

        if missing_params:
            raise MissingParametersError(missing_params)

    async def _forward(
            self,
            url: str,
            webhook_id: str,
            mapped_payload: Dict[str, Any],
            correlation_id: Optional[str]
    ) -> Any:
        headers = {
            "Content-Type": "application/json",
            "X-Lum-Webhook-Id": webhook_id,
        }
        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id

        try:
            response = await self.http_client.post(
                url,
                json=mapped_payload,
                headers=headers,
                timeout=self.forward_timeout,
            )
        except httpx.TimeoutException as e:
            raise WebhookForwardError(f"Request timeout ({self.forward_timeout:g}s)") from e
        except httpx.RequestError as e:
            raise WebhookForwardError(f"Request error: {str(e)[:200]}") from e

        if not response.is_success:
            raise WebhookForwardError(f"HTTP {response.status_code}: {response.text[:200]}")

        try:
            return response.json()
        except ValueError:
            return response.text or None

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def update_webhook_stats(
            self,
            webhook_config: WebhookConfig,
            success: bool,
            response_time: float,
            error_message: Optional[str] = None,
            forward_failure: bool = False
    ) -> None:
        """
        Record the outcome of one call in a single UPDATE statement.

        Counters are incremented in SQL so concurrent calls cannot lose
        updates. The average response time only covers successful forwards.
        """
        now = datetime.now(timezone.utc)

        values = {
            "total_calls": WebhookConfig.total_calls + 1,
            "last_call_at": now,
        }

        if success:
            values["successful_calls"] = WebhookConfig.successful_calls + 1
            values["consecutive_failures"] = 0
            values["average_response_time"] = (
                (WebhookConfig.average_response_time * WebhookConfig.successful_calls + response_time)
                / (WebhookConfig.successful_calls + 1)
            )
        else:
            values["failed_calls"] = WebhookConfig.failed_calls + 1
            values["last_error"] = (error_message or "")[:1000]
            values["last_error_at"] = now

            if forward_failure:
                values["consecutive_failures"] = WebhookConfig.consecutive_failures + 1
                values["status"] = case(
                    (
                        and_(
                            WebhookConfig.status == WebhookStatus.ACTIVE.value,
                            WebhookConfig.consecutive_failures + 1 >= self.max_consecutive_failures,
                        ),
                        WebhookStatus.ERROR.value,
                    ),
                    else_=WebhookConfig.status,
                )

        try:
            self.db.execute(
                update(WebhookConfig)
                .where(WebhookConfig.id == webhook_config.id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            # Stats are best effort; the call outcome is still reported
            logger.error("Error updating webhook stats", exc_info=e)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def _find_webhook(self, user_id: str, webhook_id: str, status: Optional[str] = None) -> Optional[WebhookConfig]:
        query = self.db.query(WebhookConfig).filter(
            WebhookConfig.user_id == user_id,
            WebhookConfig.webhook_id == webhook_id
        )
        if status:
            query = query.filter(WebhookConfig.status == status)
        return query.first()

    def _get_owned_webhook(self, user_id: str, webhook_id: str) -> WebhookConfig:
        webhook = self._find_webhook(user_id, webhook_id)
        if not webhook:
            raise WebhookNotFoundError("Webhook not found")
        return webhook

    def get_user_webhooks(self, user_id: str) -> List[Dict[str, Any]]:
        """All webhooks owned by a user, newest first."""
        webhooks = self.db.query(WebhookConfig).filter(
            WebhookConfig.user_id == user_id
        ).order_by(WebhookConfig.created_at.desc()).all()

        return [sanitize_webhook_config(webhook) for webhook in webhooks]

    def get_webhook_by_id(self, user_id: str, webhook_id: str) -> Dict[str, Any]:
        return sanitize_webhook_config(self._get_owned_webhook(user_id, webhook_id))

    def update_webhook(self, user_id: str, webhook_id: str, update_data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Update a webhook configuration.

        Only name, description and status can change; anything else in
        update_data is ignored.
        """
        webhook = self._get_owned_webhook(user_id, webhook_id)

        updates = {
            key: update_data[key]
            for key in self.UPDATABLE_FIELDS
            if update_data.get(key) is not None
        }

        if "status" in updates:
            try:
                updates["status"] = WebhookStatus(updates["status"]).value
            except ValueError:
                raise WebhookError(f"Invalid status: {updates['status']}", status_code=400)

            if updates["status"] == WebhookStatus.ACTIVE.value and webhook.status != WebhookStatus.ACTIVE.value:
                webhook.consecutive_failures = 0

        for key, value in updates.items():
            setattr(webhook, key, value)

        try:
            self.db.commit()
            self.db.refresh(webhook)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error updating webhook", exc_info=e)
            raise WebhookError("Failed to update webhook") from e

        return sanitize_webhook_config(webhook)

    def delete_webhook(self, user_id: str, webhook_id: str) -> bool:
        """Hard delete. The downstream workflow is left in place."""
        webhook = self._get_owned_webhook(user_id, webhook_id)

        try:
            self.db.delete(webhook)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error deleting webhook", exc_info=e)
            raise WebhookError("Failed to delete webhook") from e

        logger.info(f"Deleted webhook {webhook_id} for user {user_id}")
        return True
