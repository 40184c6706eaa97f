# =============================================================================
# Cache Control Worker - Cloud Storage Service
# =============================================================================
"""
Google Cloud Storage service.

Applies metadata updates to existing objects. Only the changed field is
sent (a PATCH), so the rest of the object's metadata is left untouched and
repeating the same update is harmless.
"""

from typing import Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import storage


class StorageUpdateError(Exception):
    """Custom exception for object metadata update failures."""
    pass


class ObjectStore:
    """
    Narrow wrapper around the Cloud Storage client.

    The client is built eagerly so that missing credentials surface at
    startup rather than on the first message. It is shared read-only by all
    concurrently running handlers.

    Attributes:
        project_id: GCP project identifier
        timeout: Seconds allowed per update request
    """

    def __init__(
        self,
        project_id: str,
        timeout: float = 30.0,
        client: Optional[storage.Client] = None,
    ) -> None:
        self.project_id = project_id
        self.timeout = timeout
        self._client = client if client is not None else storage.Client(project=project_id)

    def update_cache_control(self, bucket: str, name: str, cache_control: str) -> None:
        """
        Set the Cache-Control metadata of ``gs://{bucket}/{name}``.

        Raises:
            StorageUpdateError: If the update fails for any reason
        """
        blob = self._client.bucket(bucket).blob(name)
        blob.cache_control = cache_control

        try:
            blob.patch(timeout=self.timeout)
        except gcp_exceptions.NotFound as e:
            raise StorageUpdateError(f"Object not found: gs://{bucket}/{name}") from e
        except (gcp_exceptions.Forbidden, gcp_exceptions.PermissionDenied) as e:
            raise StorageUpdateError(
                f"Permission denied updating gs://{bucket}/{name}"
            ) from e
        except Exception as e:
            raise StorageUpdateError(
                f"Failed to update gs://{bucket}/{name}: {e}"
            ) from e

    def close(self) -> None:
        """Release the client's HTTP session."""
        self._client.close()
