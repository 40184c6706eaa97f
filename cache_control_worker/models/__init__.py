# =============================================================================
# Cache Control Worker - Models Package
# =============================================================================
"""Pydantic models for message payloads and the push endpoint."""

from .schemas import (
    EventDecodeError,
    HealthResponse,
    PubSubMessage,
    PubSubPushRequest,
    StorageEvent,
)

__all__ = [
    "EventDecodeError",
    "HealthResponse",
    "PubSubMessage",
    "PubSubPushRequest",
    "StorageEvent",
]
