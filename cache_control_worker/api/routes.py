# =============================================================================
# Cache Control Worker - Route Handlers
# =============================================================================
"""
Pub/Sub push handler.

An alternative to streaming pull: Pub/Sub posts each notification here.
A 2xx response acknowledges the message; any other status makes Pub/Sub
redeliver it.
"""

import threading
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from .. import __version__
from ..models import EventDecodeError, HealthResponse, PubSubPushRequest
from ..worker import EventWorker, Outcome


router = APIRouter()


class PushedMessage:
    """
    A push-delivered message.

    The terminal action is decided by the HTTP response, so ``ack`` and
    ``nack`` only record it. The first call wins.
    """

    def __init__(
        self,
        message_id: str,
        data: bytes,
        delivery_attempt: Optional[int] = None,
    ) -> None:
        self.message_id = message_id
        self.data = data
        self.delivery_attempt = delivery_attempt
        self.outcome: Optional[Outcome] = None
        self._lock = threading.Lock()

    def _settle(self, outcome: Outcome) -> None:
        with self._lock:
            if self.outcome is None:
                self.outcome = outcome

    def ack(self) -> None:
        self._settle(Outcome.ACK)

    def nack(self) -> None:
        self._settle(Outcome.NACK)


def get_worker(request: Request) -> EventWorker:
    return request.app.state.worker


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(worker: EventWorker = Depends(get_worker)) -> HealthResponse:
    """Health check for load balancers."""
    return HealthResponse(
        service=worker.settings.service_name,
        version=__version__,
        state=worker.state.value,
    )


@router.post("/", status_code=status.HTTP_200_OK, tags=["Processing"])
def receive_push(
    request: PubSubPushRequest,
    worker: EventWorker = Depends(get_worker),
) -> dict:
    """
    Handle a Pub/Sub push message.

    Declared sync so the blocking storage call runs in the threadpool.
    """
    message_id = request.message.message_id

    try:
        data = request.message.decode_data()
    except EventDecodeError as e:
        worker.logger.error(
            "message_decode_failed",
            message_id=message_id,
            error=str(e),
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid message data")

    message = PushedMessage(message_id, data, request.delivery_attempt)
    outcome = worker.handle(message)

    if outcome is Outcome.NACK:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Message rejected",
        )

    return {"status": "acknowledged", "message_id": message_id}
