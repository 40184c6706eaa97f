# =============================================================================
# Cache Control Worker - Event Worker
# =============================================================================
"""
Event worker.

Handles each storage notification by setting the configured Cache-Control
directive on the referenced object, then acknowledges the message. Any
decode or update failure rejects the message so Pub/Sub redelivers it
according to the subscription's retry and dead-letter policy.
"""

from concurrent import futures
from enum import Enum
from typing import Any, Optional, Protocol

from .config import Settings
from .lifecycle import RunContext, WorkerState
from .models import EventDecodeError, StorageEvent
from .services import ObjectStore, PubSubChannel, StorageUpdateError, SubscriptionError


class Message(Protocol):
    """What the worker needs from a delivered message."""

    data: bytes
    message_id: str

    def ack(self) -> Any: ...

    def nack(self) -> Any: ...


class Outcome(str, Enum):
    """Terminal action taken for a message."""

    ACK = "ack"
    NACK = "nack"


class EventWorker:
    """
    Applies Cache-Control to objects named in storage notifications.

    Handlers share no mutable state: each message is decoded and applied
    independently, so the channel may run any number of them concurrently.

    Attributes:
        settings: Immutable worker configuration
        state: Current lifecycle state
    """

    # How often the receive loop checks the stream while waiting for cancellation
    POLL_INTERVAL = 1.0

    def __init__(
        self,
        settings: Settings,
        store: ObjectStore,
        channel: Optional[PubSubChannel],
        logger: Any,
    ) -> None:
        self.settings = settings
        self._store = store
        self._channel = channel
        self._logger = logger.bind(topic=settings.topic)
        self._context: Optional[RunContext] = None
        self.state = WorkerState.STARTING

    @property
    def logger(self) -> Any:
        """Logger bound to the topic, shared with the push routes."""
        return self._logger

    def handle(self, message: Message) -> Outcome:
        """
        Process one message and take exactly one terminal action on it.

        Returns:
            Outcome: ``ACK`` when the object was updated, ``NACK`` otherwise
        """
        log = self._logger.bind(message_id=getattr(message, "message_id", None))
        delivery_attempt = getattr(message, "delivery_attempt", None)
        if delivery_attempt is not None:
            log = log.bind(delivery_attempt=delivery_attempt)

        # Released back to Pub/Sub untouched once shutdown has started
        if self._context is not None and self._context.cancelled:
            log.debug("message_released_during_drain")
            message.nack()
            return Outcome.NACK

        try:
            event = StorageEvent.from_message_data(message.data)
        except EventDecodeError as e:
            log.error("message_decode_failed", error=str(e))
            message.nack()
            return Outcome.NACK

        try:
            self._store.update_cache_control(
                event.bucket,
                event.name,
                self.settings.cache_control,
            )
        except StorageUpdateError as e:
            log.error(
                "object_update_failed",
                bucket=event.bucket,
                name=event.name,
                error=str(e),
            )
            message.nack()
            return Outcome.NACK

        message.ack()
        log.debug(
            "object_updated",
            bucket=event.bucket,
            name=event.name,
            cache_control=self.settings.cache_control,
        )
        return Outcome.ACK

    def run(self, context: RunContext) -> None:
        """
        Consume the subscription until ``context`` is cancelled.

        Cancellation drains the stream: undispatched messages go back to
        Pub/Sub and running handlers get up to ``shutdown_timeout`` seconds
        to finish.

        Raises:
            SubscriptionError: If the stream ends for any other reason
        """
        if self._channel is None:
            raise SubscriptionError("worker has no message channel to receive from")

        self._context = context
        self._logger.info(
            "worker_starting",
            subscription=self._channel.subscription_path,
            cache_control=self.settings.cache_control,
        )

        try:
            streaming_pull_future = self._channel.open(self.handle)
        except Exception as e:
            self._channel.close()
            self.state = WorkerState.STOPPED
            raise SubscriptionError(f"cannot open subscription: {e}") from e
        self.state = WorkerState.RUNNING

        try:
            while not context.wait(self.POLL_INTERVAL):
                if streaming_pull_future.done():
                    break

            if not context.cancelled:
                try:
                    streaming_pull_future.result()
                except Exception as e:
                    raise SubscriptionError(f"cannot consume messages: {e}") from e
                raise SubscriptionError("cannot consume messages: stream closed unexpectedly")

            self.state = WorkerState.DRAINING
            self._logger.info("worker_draining", timeout_seconds=self.settings.shutdown_timeout)
            streaming_pull_future.cancel()
            try:
                streaming_pull_future.result(timeout=self.settings.shutdown_timeout)
            except futures.TimeoutError:
                self._logger.warning(
                    "drain_timed_out",
                    timeout_seconds=self.settings.shutdown_timeout,
                )
            except Exception as e:
                # Errors raised while tearing down a cancelled stream are expected
                self._logger.info("stream_closed_during_drain", error=str(e))
        finally:
            if not streaming_pull_future.done():
                streaming_pull_future.cancel()
            self._channel.close()
            self.state = WorkerState.STOPPED
