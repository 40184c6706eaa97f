# =============================================================================
# Cache Control Worker - Push Endpoint Tests
# =============================================================================
"""
Tests for the Pub/Sub push endpoint.

Tests cover:
- Health check
- Ack/nack mapping to HTTP status codes
- Envelope decoding
"""

import base64
import json

import pytest
import structlog
from fastapi.testclient import TestClient
from structlog.testing import capture_logs

from cache_control_worker.api.routes import PushedMessage
from cache_control_worker.lifecycle import WorkerState
from cache_control_worker.main import create_app
from cache_control_worker.services import StorageUpdateError
from cache_control_worker.worker import EventWorker, Outcome


# =============================================================================
# Test Client Fixture
# =============================================================================

@pytest.fixture
def client(settings, store):
    """Create test client around a worker with a mocked store."""
    worker = EventWorker(settings, store, None, structlog.get_logger("test"))
    with TestClient(create_app(worker)) as test_client:
        yield test_client


def create_push_request(data, delivery_attempt=None) -> dict:
    """Helper to create a properly formatted Pub/Sub push request."""
    if isinstance(data, dict):
        data = json.dumps(data).encode()
    body = {
        "message": {
            "data": base64.b64encode(data).decode(),
            "messageId": "test_msg_123",
            "publishTime": "2024-01-15T10:00:00Z",
            "attributes": {"eventType": "OBJECT_FINALIZE"},
        },
        "subscription": "projects/test/subscriptions/bucket-events",
    }
    if delivery_attempt is not None:
        body["deliveryAttempt"] = delivery_attempt
    return body


# =============================================================================
# Health Check Tests
# =============================================================================

class TestHealthCheck:

    def test_health_check_reports_running(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "cache-control-worker"
        assert data["state"] == "running"
        assert "timestamp" in data


# =============================================================================
# Push Processing Tests
# =============================================================================

class TestPushProcessing:
    """Tests for push-delivered notifications."""

    def test_valid_event_is_acknowledged(self, client, store):
        """A handled message should return 200 so Pub/Sub acks it."""
        response = client.post("/", json=create_push_request({"bucket": "b1", "name": "obj.png"}))

        assert response.status_code == 200
        assert response.json() == {"status": "acknowledged", "message_id": "test_msg_123"}
        store.update_cache_control.assert_called_once_with("b1", "obj.png", "no-cache")

    def test_malformed_event_is_rejected(self, client, store):
        """A payload missing name should return a non-2xx status."""
        response = client.post("/", json=create_push_request({"bucket": "b1"}, delivery_attempt=2))

        assert response.status_code == 500
        store.update_cache_control.assert_not_called()

    def test_update_failure_is_rejected(self, client, store):
        store.update_cache_control.side_effect = StorageUpdateError("denied")

        response = client.post("/", json=create_push_request({"bucket": "b1", "name": "obj.png"}))

        assert response.status_code == 500

    def test_invalid_base64_is_rejected(self, client, store):
        body = create_push_request({"bucket": "b1", "name": "obj.png"})
        body["message"]["data"] = "not_valid_base64!!!"

        response = client.post("/", json=body)

        assert response.status_code == 400
        store.update_cache_control.assert_not_called()

    def test_envelope_without_message_is_rejected(self, client):
        response = client.post("/", json={"subscription": "projects/test/subscriptions/x"})

        assert response.status_code == 422


class TestPushedMessage:

    def test_first_terminal_action_wins(self):
        message = PushedMessage("m1", b"{}")

        message.nack()
        message.ack()

        assert message.outcome is Outcome.NACK


# =============================================================================
# Push Lifecycle Tests
# =============================================================================

class TestPushLifecycle:
    """Tests for startup and shutdown records in push mode."""

    def test_startup_and_shutdown_are_logged_with_topic(self, settings, store):
        with capture_logs() as logs:
            worker = EventWorker(settings, store, None, structlog.get_logger("test"))
            assert worker.state is WorkerState.STARTING

            with TestClient(create_app(worker)):
                assert worker.state is WorkerState.RUNNING

        assert worker.state is WorkerState.STOPPED
        lifecycle_events = [
            entry for entry in logs if entry["event"] in ("worker_starting", "worker_draining")
        ]
        assert [entry["event"] for entry in lifecycle_events] == ["worker_starting", "worker_draining"]
        assert all(entry["topic"] == "bucket-events" for entry in lifecycle_events)
        assert lifecycle_events[0]["delivery_mode"] == "push"

    def test_invalid_base64_is_logged_through_worker_logger(self, settings, store):
        """Envelope decode failures should carry the worker's bound topic."""
        with capture_logs() as logs:
            worker = EventWorker(settings, store, None, structlog.get_logger("test"))
            with TestClient(create_app(worker)) as client:
                body = create_push_request({"bucket": "b1", "name": "obj.png"})
                body["message"]["data"] = "not_valid_base64!!!"
                response = client.post("/", json=body)

        assert response.status_code == 400
        failures = [entry for entry in logs if entry["event"] == "message_decode_failed"]
        assert len(failures) == 1
        assert failures[0]["topic"] == "bucket-events"
        assert failures[0]["message_id"] == "test_msg_123"
