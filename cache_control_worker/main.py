"""
Cache Control Worker - Main Application

Entry point: validates configuration, builds the backend clients, then
either consumes the subscription with streaming pull until a termination
signal arrives or serves the Pub/Sub push endpoint.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional, Sequence

import structlog
import uvicorn
from fastapi import FastAPI

from . import __version__
from .api import router
from .config import ConfigurationError, Settings, load_settings
from .lifecycle import RunContext, WorkerState, install_signal_handlers
from .services import ObjectStore, PubSubChannel, SubscriptionError
from .worker import EventWorker


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured JSON logging for Cloud Logging compatibility."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def create_app(worker: EventWorker) -> FastAPI:
    """Create the FastAPI application serving the push endpoint."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        worker.logger.info(
            "worker_starting",
            delivery_mode="push",
            cache_control=worker.settings.cache_control,
        )
        worker.state = WorkerState.RUNNING
        yield
        worker.state = WorkerState.DRAINING
        worker.logger.info("worker_draining", timeout_seconds=worker.settings.shutdown_timeout)
        worker.state = WorkerState.STOPPED

    app = FastAPI(
        title="Cache Control Worker",
        description="Applies Cache-Control to Cloud Storage objects from bucket notifications",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.worker = worker
    app.include_router(router)
    return app


def serve_push(worker: EventWorker, settings: Settings) -> None:
    """Serve the push endpoint until uvicorn receives a termination signal."""
    uvicorn.run(
        create_app(worker),
        host=settings.host,
        port=settings.port,
        log_config=None,
        timeout_graceful_shutdown=max(1, int(settings.shutdown_timeout)),
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Run the worker.

    Returns:
        int: Process exit code, 0 after a graceful stop, 1 on fatal errors
    """
    try:
        settings = load_settings(argv)
    except ConfigurationError as e:
        configure_logging()
        structlog.get_logger("cache_control_worker").critical(
            "invalid_configuration",
            error=str(e),
        )
        return 1

    configure_logging(settings.log_level)
    logger = structlog.get_logger("cache_control_worker").bind(topic=settings.topic)

    try:
        store = ObjectStore(settings.gcp_project_id, timeout=settings.request_timeout)
        channel = None
        if settings.delivery_mode == "pull":
            channel = PubSubChannel(
                settings.gcp_project_id,
                settings.topic,
                max_messages=settings.max_messages,
            )
    except Exception as e:
        logger.critical(
            "backend_client_init_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        return 1

    worker = EventWorker(settings, store, channel, logger)

    try:
        if settings.delivery_mode == "push":
            serve_push(worker, settings)
        else:
            context = RunContext()
            install_signal_handlers(context, logger)
            worker.run(context)
    except SubscriptionError as e:
        logger.critical("cannot_consume_messages", error=str(e))
        return 1
    finally:
        store.close()

    logger.info("worker_stopped", status="ok")
    return 0


if __name__ == "__main__":
    sys.exit(main())
