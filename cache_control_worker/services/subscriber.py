# =============================================================================
# Cache Control Worker - Pub/Sub Subscriber Service
# =============================================================================
"""
Google Cloud Pub/Sub streaming pull channel.

Opens a streaming pull on one subscription. The client library dispatches
each message to the callback on its own thread pool; the returned future
completes when the stream is cancelled or fails.
"""

from typing import Callable, Optional

from google.cloud import pubsub_v1
from google.cloud.pubsub_v1.subscriber.futures import StreamingPullFuture
from google.cloud.pubsub_v1.subscriber.message import Message


class SubscriptionError(Exception):
    """Raised when the streaming pull ends for a reason other than cancellation."""
    pass


class PubSubChannel:
    """
    Message channel bound to a single subscription.

    Attributes:
        subscription_path: Full subscription resource name
        max_messages: Flow-control bound on outstanding messages
    """

    def __init__(
        self,
        project_id: str,
        subscription: str,
        max_messages: int = 100,
        subscriber: Optional[pubsub_v1.SubscriberClient] = None,
    ) -> None:
        self._subscriber = subscriber if subscriber is not None else pubsub_v1.SubscriberClient()
        self.max_messages = max_messages

        if subscription.startswith("projects/"):
            self.subscription_path = subscription
        else:
            self.subscription_path = self._subscriber.subscription_path(project_id, subscription)

    def open(self, callback: Callable[[Message], object]) -> StreamingPullFuture:
        """
        Start streaming pull.

        On cancellation, messages not yet dispatched are released back to
        Pub/Sub and the future waits for callbacks already running.
        """
        flow_control = pubsub_v1.types.FlowControl(max_messages=self.max_messages)
        return self._subscriber.subscribe(
            self.subscription_path,
            callback=callback,
            flow_control=flow_control,
            await_callbacks_on_shutdown=True,
        )

    def close(self) -> None:
        self._subscriber.close()
