# webhook_relay/services/workflow/workflow_engine.py
"""
Downstream workflow engine adapters.

Every public webhook is backed by a workflow in the automation engine (n8n).
The engine's own webhook URL is stored on the config and never shown to
clients.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

import httpx

from webhook_relay.core.errors import WorkflowEngineError

logger = logging.getLogger(__name__)


@dataclass
class WorkflowRegistration:
    """Identity and trigger URL of a downstream workflow"""
    id: str
    webhook_url: str


def _workflow_path() -> str:
    return f"workflow_{uuid.uuid4()}"


class StubWorkflowEngine:
    """
    Fabricates workflow registrations without talking to the engine.

    Used when no API key is configured; the engine is expected to expose a
    webhook under the generated path.
    """

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    async def create_or_get_workflow(
            self,
            user_id: str,
            workspace_id: str,
            parameters: List[str]
    ) -> WorkflowRegistration:
        path = _workflow_path()
        return WorkflowRegistration(id=path, webhook_url=f"{self.base_url}/webhook/{path}")


class N8nWorkflowEngine:
    """Registers workflows through the n8n public REST API."""

    def __init__(self, base_url: str, api_key: str, http_client: httpx.AsyncClient):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.http_client = http_client

    def _headers(self) -> dict:
        return {
            "X-N8N-API-KEY": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    @staticmethod
    def _build_workflow(name: str, path: str, parameters: List[str]) -> dict:
        return {
            "name": name,
            "nodes": [
                {
                    "name": "Webhook",
                    "type": "n8n-nodes-base.webhook",
                    "typeVersion": 1,
                    "position": [250, 300],
                    "parameters": {
                        "httpMethod": "POST",
                        "path": path,
                        "responseMode": "onReceived",
                        "options": {},
                    },
                    "notes": f"Expected parameters: {', '.join(parameters)}",
                }
            ],
            "connections": {},
            "settings": {},
        }

    async def create_or_get_workflow(
            self,
            user_id: str,
            workspace_id: str,
            parameters: List[str]
    ) -> WorkflowRegistration:
        """
        Create a workflow with a webhook trigger and activate it.

        Returns:
            WorkflowRegistration with the engine's production webhook URL

        Raises:
            WorkflowEngineError: If the engine rejects either call
        """
        path = _workflow_path()
        workflow = self._build_workflow(f"lum {workspace_id} {path}", path, parameters)

        try:
            response = await self.http_client.post(
                f"{self.base_url}/api/v1/workflows",
                json=workflow,
                headers=self._headers(),
            )
            response.raise_for_status()
            workflow_id = str(response.json()["id"])

            activation = await self.http_client.post(
                f"{self.base_url}/api/v1/workflows/{workflow_id}/activate",
                headers=self._headers(),
            )
            activation.raise_for_status()

        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error(f"Error creating n8n workflow for user {user_id}: {e}")
            raise WorkflowEngineError("Failed to set up webhook processing") from e

        logger.info(f"Created n8n workflow {workflow_id} for workspace {workspace_id}")
        return WorkflowRegistration(id=workflow_id, webhook_url=f"{self.base_url}/webhook/{path}")


def build_workflow_engine(settings, http_client: Optional[httpx.AsyncClient] = None):
    """Pick the workflow engine adapter from settings.WORKFLOW_ENGINE"""
    mode = settings.WORKFLOW_ENGINE.lower()

    if mode == "auto":
        mode = "n8n" if settings.N8N_API_KEY else "stub"

    if mode == "n8n":
        if not settings.N8N_API_KEY:
            raise ValueError("N8N_API_KEY is required when WORKFLOW_ENGINE is 'n8n'")
        if http_client is None:
            raise ValueError("An HTTP client is required for the n8n workflow engine")
        return N8nWorkflowEngine(settings.N8N_BASE_URL, settings.N8N_API_KEY, http_client)

    if mode == "stub":
        return StubWorkflowEngine(settings.N8N_BASE_URL)

    raise ValueError(f"Unknown workflow engine: {settings.WORKFLOW_ENGINE}")
