"""Public ingestion: POST /{user_id}/webhook/{webhook_id}"""
import json

import httpx

from tests.conftest import FULL_PAYLOAD, OTHER_USER_ID, USER_ID
from webhook_relay.models import WebhookConfig
from webhook_relay.utils.parameter_mapper import METADATA_SOURCE


def _url(webhook, user_id=USER_ID):
    return f"/{user_id}/webhook/{webhook['webhook_id']}"


class TestIngestion:
    def test_relays_mapped_payload(self, client, created_webhook, downstream):
        response = client.post(_url(created_webhook), json=FULL_PAYLOAD)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Webhook processed successfully",
            "data": {"received": True},
        }

        assert len(downstream.posts) == 1
        forwarded = json.loads(downstream.posts[0].content)
        metadata = forwarded.pop("metadata")
        assert forwarded == {**FULL_PAYLOAD, "n8n_campaign_name": "X"}
        assert metadata["source"] == METADATA_SOURCE
        assert "processed_at" in metadata

    def test_forward_headers(self, client, created_webhook, downstream):
        client.post(
            _url(created_webhook),
            json=FULL_PAYLOAD,
            headers={"X-Correlation-ID": "corr-123"},
        )

        request = downstream.posts[0]
        assert request.headers["X-Lum-Webhook-Id"] == created_webhook["webhook_id"]
        assert request.headers["X-Correlation-ID"] == "corr-123"
        assert request.headers["Content-Type"].startswith("application/json")

    def test_unselected_fields_are_not_forwarded(self, client, auth_headers, downstream):
        webhook = client.post(
            "/api/webhooks",
            json={
                "workspaceId": "ws-1",
                "name": "Narrow",
                "selectedParameters": ["campaign_id"],
            },
            headers=auth_headers,
        ).json()["data"]

        response = client.post(_url(webhook), json={**FULL_PAYLOAD, "secret": "s"})

        assert response.status_code == 200
        forwarded = json.loads(downstream.posts[0].content)
        assert set(forwarded) == {"campaign_id", "metadata"}

    def test_form_encoded_payload(self, client, created_webhook, downstream):
        response = client.post(_url(created_webhook), data=FULL_PAYLOAD)

        assert response.status_code == 200
        forwarded = json.loads(downstream.posts[0].content)
        assert forwarded["campaign_id"] == "1"
        assert forwarded["n8n_campaign_name"] == "X"

    def test_success_updates_stats(self, client, auth_headers, created_webhook):
        client.post(_url(created_webhook), json=FULL_PAYLOAD)

        stats = client.get(
            f"/api/webhooks/{created_webhook['webhook_id']}", headers=auth_headers
        ).json()["data"]["stats"]
        assert stats["total_calls"] == 1
        assert stats["successful_calls"] == 1
        assert stats["failed_calls"] == 0
        assert stats["last_call_at"] is not None


class TestIngestionErrors:
    def test_missing_parameters(self, client, created_webhook, downstream):
        payload = {"campaign_name": "X", "caller_id": "+1555"}

        response = client.post(_url(created_webhook), json=payload)

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Missing required parameters: campaign_id, recording_url",
        }
        assert downstream.posts == []

    def test_empty_string_counts_as_missing(self, client, created_webhook):
        response = client.post(_url(created_webhook), json={**FULL_PAYLOAD, "campaign_id": ""})

        assert response.status_code == 400
        assert "campaign_id" in response.json()["error"]

    def test_missing_parameters_count_as_failed_call(self, client, db_session, created_webhook):
        client.post(_url(created_webhook), json={})

        db_session.expire_all()
        webhook = db_session.query(WebhookConfig).filter(
            WebhookConfig.webhook_id == created_webhook["webhook_id"]
        ).one()
        assert webhook.total_calls == 1
        assert webhook.failed_calls == 1
        assert webhook.consecutive_failures == 0
        assert webhook.status == "active"

    def test_unknown_webhook(self, client, downstream):
        response = client.post(f"/{USER_ID}/webhook/does-not-exist", json=FULL_PAYLOAD)

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Webhook not found or inactive"}
        assert downstream.requests == []

    def test_wrong_user(self, client, created_webhook):
        response = client.post(_url(created_webhook, user_id=OTHER_USER_ID), json=FULL_PAYLOAD)
        assert response.status_code == 404

    def test_inactive_webhook(self, client, auth_headers, created_webhook, downstream):
        client.put(
            f"/api/webhooks/{created_webhook['webhook_id']}",
            json={"status": "inactive"},
            headers=auth_headers,
        )

        response = client.post(_url(created_webhook), json=FULL_PAYLOAD)

        assert response.status_code == 404
        assert downstream.posts == []

    def test_invalid_json(self, client, created_webhook):
        response = client.post(
            _url(created_webhook),
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid JSON payload"}

    def test_json_array_is_rejected(self, client, created_webhook):
        response = client.post(_url(created_webhook), json=[FULL_PAYLOAD])

        assert response.status_code == 400
        assert response.json()["error"] == "Payload must be a JSON object"

    def test_downstream_error_is_502(self, client, created_webhook, downstream):
        downstream.status_code = 503

        response = client.post(_url(created_webhook), json=FULL_PAYLOAD)

        assert response.status_code == 502
        assert response.json()["success"] is False

    def test_unreachable_downstream_is_502(self, client, created_webhook, downstream):
        downstream.error = httpx.ConnectError("connection refused")

        response = client.post(_url(created_webhook), json=FULL_PAYLOAD)

        assert response.status_code == 502

    def test_file_upload_is_rejected(self, client, created_webhook, downstream):
        response = client.post(
            _url(created_webhook),
            data=FULL_PAYLOAD,
            files={"recording": ("call.mp3", b"ID3", "audio/mpeg")},
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "File uploads are not supported"}
        assert downstream.posts == []
