"""Main entry point for the MultiClusterHub Operator."""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Callable

import kopf
from werkzeug.serving import make_server

from . import health
from . import logging as structured_logging
from .config import OperatorConfig
from .constants import API_GROUP, PLURAL_HUB
from .controller import Controller
from .handlers.hub import HubReconciler
from .handlers.watches import Watch, build_watches
from .services.kube import ClusterClient, load_kube_config
from .tracing import initialize_tracing
from .utils.workqueue import WorkQueue

logger = logging.getLogger(__name__)

operator_config = OperatorConfig.from_env()
PROXY_ENV_VARS = ("HTTP_PROXY", "HTTPS_PROXY", "NO_PROXY")

queue = WorkQueue()
_client: ClusterClient | None = None
_controller: Controller | None = None


def _ready() -> bool:
    return _controller is not None and _controller.ready()


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator and start the reconcile workers."""
    global _client, _controller

    # Set up structured JSON logging
    structured_logging.setup_structured_logging()
    initialize_tracing()

    for var in PROXY_ENV_VARS:
        if os.getenv(var):
            logger.info(f"Proxy environment variable {var} is set: {os.getenv(var)}")

    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()
    settings.posting.level = logging.WARNING
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = operator_config.max_workers

    # Exponential backoff for failed reconciles: 1s, 2s, 4s ... 60s (max)
    queue.min_delay = operator_config.min_retry_delay
    queue.max_delay = operator_config.max_retry_delay

    load_kube_config()
    _client = ClusterClient()
    _controller = Controller(HubReconciler(_client, operator_config), queue, workers=operator_config.max_workers)
    _controller.start()

    # Start metrics HTTP server with health check endpoints
    combined_app = health.create_combined_wsgi_app(_ready)
    server = make_server("", operator_config.metrics_port, combined_app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()


@kopf.on.cleanup()
def shutdown(**_: Any) -> None:
    """Stop the reconcile workers."""
    if _controller is not None:
        _controller.stop()


def _event_handler(watch: Watch) -> Callable[..., None]:
    def handle(event: dict[str, Any], **_: Any) -> None:
        if _client is None:
            return
        for request in watch.requests(event.get("type"), event.get("object") or {}, _client):
            queue.add(request)

    return handle


for _watch in build_watches():
    kopf.on.event(
        group=_watch.group or None,
        version=_watch.version,
        plural=_watch.plural,
        id=f"watch-{_watch.name}",
    )(_event_handler(_watch))


@kopf.timer(API_GROUP, "v1", PLURAL_HUB, interval=operator_config.resync_period)
def resync(meta: dict[str, Any], **_: Any) -> None:
    """Periodically requeue every hub."""
    queue.add((meta.get("namespace", ""), meta.get("name", "")))
