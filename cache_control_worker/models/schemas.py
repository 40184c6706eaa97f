# =============================================================================
# Cache Control Worker - Pydantic Schemas
# =============================================================================
"""
Message models for the Cache Control Worker.

Covers the storage notification payload carried in each Pub/Sub message
and the envelope Pub/Sub sends to push endpoints.
"""

import base64
import binascii
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class EventDecodeError(ValueError):
    """Raised when a message payload is not a valid storage event."""
    pass


class StorageEvent(BaseModel):
    """
    Cloud Storage change notification.

    Only ``bucket`` and ``name`` are read; the remaining fields of the
    notification payload (contentType, generation, ...) are ignored.

    Attributes:
        bucket: Bucket holding the object
        name: Object name within the bucket
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    bucket: str = Field(..., min_length=1, description="Bucket name")
    name: str = Field(..., min_length=1, description="Object name")

    @classmethod
    def from_message_data(cls, data: Union[bytes, str]) -> "StorageEvent":
        """
        Decode a message payload.

        Raises:
            EventDecodeError: If the payload is not a JSON object with
                non-empty string ``bucket`` and ``name`` fields
        """
        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            raise EventDecodeError(f"cannot decode storage event: {e}") from e


class PubSubMessage(BaseModel):
    """
    Pub/Sub message inside a push request.

    Attributes:
        data: Base64-encoded message content
        message_id: Unique message identifier assigned by Pub/Sub
        publish_time: When the message was published
        attributes: Optional message attributes
    """

    model_config = ConfigDict(populate_by_name=True)

    data: str = Field(default="", description="Base64-encoded message data")
    message_id: str = Field(alias="messageId", description="Pub/Sub message ID")
    publish_time: Optional[str] = Field(
        default=None,
        alias="publishTime",
        description="Message publish timestamp",
    )
    attributes: Optional[Dict[str, str]] = Field(
        default=None,
        description="Message attributes",
    )

    def decode_data(self) -> bytes:
        """
        Decode the base64-encoded message data.

        Raises:
            EventDecodeError: If data is not valid base64
        """
        try:
            return base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EventDecodeError(f"cannot decode message data: {e}") from e


class PubSubPushRequest(BaseModel):
    """
    Pub/Sub push subscription request format.

    Attributes:
        message: The Pub/Sub message
        subscription: Full subscription resource name
        delivery_attempt: Delivery count, present when dead lettering is enabled
    """

    model_config = ConfigDict(populate_by_name=True)

    message: PubSubMessage = Field(..., description="The Pub/Sub message")
    subscription: str = Field(..., description="Subscription resource name")
    delivery_attempt: Optional[int] = Field(default=None, alias="deliveryAttempt")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy", description="Health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    state: str = Field(..., description="Worker lifecycle state")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Current timestamp",
    )
