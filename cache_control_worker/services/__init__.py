# =============================================================================
# Cache Control Worker - Services Package
# =============================================================================
"""Backend adapters for Cloud Storage and Pub/Sub."""

from .storage import ObjectStore, StorageUpdateError
from .subscriber import PubSubChannel, SubscriptionError

__all__ = [
    "ObjectStore",
    "StorageUpdateError",
    "PubSubChannel",
    "SubscriptionError",
]
