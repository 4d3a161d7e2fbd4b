"""
Webhook health monitoring.

Periodically checks the downstream workflow URL of every monitored webhook
with an OPTIONS request and moves webhooks between ``active`` and ``error``.
The service is owned by the application lifespan: nothing runs until
``start()`` is awaited.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import httpx
from sqlalchemy import func, update
from sqlalchemy.orm import Session

from webhook_relay.models.webhook_config import WebhookConfig, WebhookStatus

logger = logging.getLogger(__name__)

HEALTH_CHECK_HEADER = "X-Lum-Health-Check"
MAX_ERROR_ENTRIES = 10


class MonitoringService:
    """
    Health checks for downstream workflow endpoints.

    Usage:
        monitoring = MonitoringService(SessionLocal, http_client, interval_seconds=300)
        await monitoring.start()
        ...
        await monitoring.stop()
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        http_client: httpx.AsyncClient,
        interval_seconds: float = 300.0,
        enabled: bool = True,
        check_timeout: float = 5.0,
    ):
        self.session_factory = session_factory
        self.http_client = http_client
        self.interval_seconds = interval_seconds
        self.enabled = enabled
        self.check_timeout = check_timeout
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the periodic health check loop."""
        if not self.enabled:
            logger.info("Webhook health monitoring disabled")
            return

        if self.is_running:
            logger.warning("Webhook health monitoring already running")
            return

        async def _monitor():
            while True:
                await asyncio.sleep(self.interval_seconds)
                await self.perform_health_checks()

        self._task = asyncio.create_task(_monitor())
        logger.info(f"Webhook health monitoring started. Interval: {self.interval_seconds:g}s")

    async def stop(self) -> None:
        """Stop the loop and wait for it to unwind."""
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Webhook health monitoring stopped")

    async def perform_health_checks(self) -> int:
        """
        Check every active or errored webhook, one after another.

        A failure on one webhook is logged and does not stop the pass.

        Returns:
            Number of webhooks checked
        """
        db = None
        try:
            db = self.session_factory()
            # Plain rows, so a webhook deleted mid-pass cannot trip a reload
            webhooks = db.query(
                WebhookConfig.id,
                WebhookConfig.webhook_id,
                WebhookConfig.n8n_webhook_url,
            ).filter(
                WebhookConfig.status.in_([WebhookStatus.ACTIVE.value, WebhookStatus.ERROR.value])
            ).all()
            # Release the read transaction before probing
            db.rollback()

            logger.info(f"Running health checks on {len(webhooks)} webhooks")

            for webhook in webhooks:
                try:
                    await self.check_webhook_health(webhook, db)
                except Exception as e:
                    db.rollback()
                    logger.error(f"Health check errored for webhook {webhook.webhook_id}", exc_info=e)

            return len(webhooks)

        except Exception as e:
            logger.error("Error performing webhook health checks", exc_info=e)
            return 0
        finally:
            if db is not None:
                db.close()

    async def check_webhook_health(self, webhook, db: Session) -> bool:
        """
        Check a single webhook's downstream endpoint and persist the outcome.

        ``webhook`` needs ``id``, ``webhook_id`` and ``n8n_webhook_url``.
        Status changes are conditional updates against the current row, so a
        webhook deactivated or deleted during the pass is left alone.

        Returns:
            True if the endpoint answered with a 2xx status
        """
        try:
            response = await self.http_client.options(
                webhook.n8n_webhook_url,
                headers={HEALTH_CHECK_HEADER: "true"},
                timeout=self.check_timeout,
            )
            response.raise_for_status()

        except httpx.HTTPError as e:
            message = str(e) or type(e).__name__
            logger.error(f"Health check failed for webhook {webhook.webhook_id}: {message}")

            result = db.execute(
                update(WebhookConfig)
                .where(
                    WebhookConfig.id == webhook.id,
                    WebhookConfig.status.in_([WebhookStatus.ACTIVE.value, WebhookStatus.ERROR.value]),
                )
                .values(
                    status=WebhookStatus.ERROR.value,
                    last_error=f"Health check failed: {message}"[:1000],
                    last_error_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
            db.commit()
            if result.rowcount == 0:
                logger.info(f"Webhook {webhook.webhook_id} deactivated or deleted during the pass, skipped")
            return False

        result = db.execute(
            update(WebhookConfig)
            .where(
                WebhookConfig.id == webhook.id,
                WebhookConfig.status == WebhookStatus.ERROR.value,
            )
            .values(status=WebhookStatus.ACTIVE.value, consecutive_failures=0)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        if result.rowcount:
            logger.info(f"Webhook {webhook.webhook_id} recovered from error state")

        return True

    def get_health_status(self) -> Dict[str, Any]:
        """Aggregate status counts plus the most recent errors."""
        db = self.session_factory()
        try:
            counts = dict(
                db.query(WebhookConfig.status, func.count(WebhookConfig.id))
                .group_by(WebhookConfig.status)
                .all()
            )
            active = counts.get(WebhookStatus.ACTIVE.value, 0)
            error = counts.get(WebhookStatus.ERROR.value, 0)
            inactive = counts.get(WebhookStatus.INACTIVE.value, 0)
            total = active + error + inactive

            webhooks_with_errors = (
                db.query(WebhookConfig)
                .filter(WebhookConfig.status == WebhookStatus.ERROR.value)
                .order_by(WebhookConfig.last_error_at.desc().nulls_last())
                .limit(MAX_ERROR_ENTRIES)
                .all()
            )

            return {
                "summary": {
                    "total": total,
                    "active": active,
                    "error": error,
                    "inactive": inactive,
                    "health_percentage": (active / total * 100) if total else 0.0,
                },
                "errors": [
                    {
                        "webhook_id": webhook.webhook_id,
                        "user_id": webhook.user_id,
                        "name": webhook.name,
                        "last_error": webhook.last_error,
                        "last_error_at": webhook.last_error_at,
                    }
                    for webhook in webhooks_with_errors
                ],
            }
        finally:
            db.close()
