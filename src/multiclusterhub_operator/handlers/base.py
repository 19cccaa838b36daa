"""Base handler class with common functionality for the hub reconciler."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from .. import metrics
from ..constants import API_GROUP_VERSION, CONTROLLER_NAME, FINALIZER, KIND_HUB
from ..logging import log_resource_event
from ..result import ReconcileResult
from ..utils.errors import OperatorError, sanitize_exception
from ..utils.events import emit_reconcile_failed, emit_reconcile_started
from ..utils.hub import meta, name_of, namespace_of


class BaseHandler:
    """Base class with structured logging, finalizer and metrics helpers."""

    def __init__(self, kind: str, client: Any):
        """Initialize base handler.

        Args:
            kind: The Kubernetes resource kind handled (e.g., "MultiClusterHub")
            client: Cluster client used for direct writes on the primary resource
        """
        self.kind = kind
        self.client = client
        self.logger = logging.getLogger(__name__)

    def _get_resource_context(self, obj: dict[str, Any]) -> dict[str, Any]:
        metadata = obj.get("metadata") or {}
        return {
            "name": metadata.get("name", "unknown"),
            "namespace": metadata.get("namespace", ""),
            "uid": metadata.get("uid", "unknown"),
        }

    def _log(
        self,
        level: int,
        obj: dict[str, Any],
        message: str,
        event: str,
        reason: str,
        **kwargs: Any,
    ) -> None:
        ctx = self._get_resource_context(obj)
        log_resource_event(
            self.logger,
            controller=CONTROLLER_NAME,
            resource_kind=self.kind,
            resource_name=ctx["name"],
            namespace=ctx["namespace"],
            uid=ctx["uid"],
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def log_info(
        self,
        obj: dict[str, Any],
        message: str,
        event: str = "info",
        reason: str = "Info",
        **kwargs: Any,
    ) -> None:
        """Log an info-level structured log message.

        Args:
            obj: Resource body the message is about
            message: Log message
            event: Event type (default: "info")
            reason: Reason for the event (default: "Info")
            **kwargs: Additional fields to include in the log
        """
        self._log(logging.INFO, obj, message, event, reason, **kwargs)

    def log_warning(
        self,
        obj: dict[str, Any],
        message: str,
        event: str = "warning",
        reason: str = "Warning",
        **kwargs: Any,
    ) -> None:
        self._log(logging.WARNING, obj, message, event, reason, **kwargs)

    def log_error(
        self,
        obj: dict[str, Any],
        message: str,
        error: Exception | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.

        Args:
            obj: Resource body the message is about
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        log_data = kwargs.copy()
        if error is not None:
            log_data["error"] = sanitize_exception(error)
            log_data["error_type"] = type(error).__name__
        self._log(logging.ERROR, obj, message, event, reason, **log_data)

    def _patch_finalizers(self, hub: dict[str, Any], finalizers: list[str]) -> None:
        patched = self.client.patch(
            API_GROUP_VERSION,
            KIND_HUB,
            name_of(hub),
            namespace_of(hub),
            {"metadata": {"finalizers": finalizers or None}},
        )
        meta(hub)["finalizers"] = finalizers
        if patched:
            meta(hub)["resourceVersion"] = (patched.get("metadata") or {}).get("resourceVersion")

    def ensure_finalizer(self, hub: dict[str, Any]) -> bool:
        """Add the finalizer to the hub and persist it. Returns True if it was added."""
        finalizers = list(meta(hub).get("finalizers") or [])
        if FINALIZER in finalizers:
            return False
        finalizers.append(FINALIZER)
        self._patch_finalizers(hub, finalizers)
        self.log_info(hub, "Added finalizer", reason="FinalizerAdded")
        return True

    def remove_finalizer(self, hub: dict[str, Any]) -> bool:
        """Remove the finalizer from the hub and persist it. Returns True if it was removed."""
        finalizers = list(meta(hub).get("finalizers") or [])
        if FINALIZER not in finalizers:
            return False
        finalizers.remove(FINALIZER)
        self._patch_finalizers(hub, finalizers)
        self.log_info(hub, "Removed finalizer", reason="FinalizerRemoved")
        return True

    def reconcile_with_metrics(
        self,
        hub: dict[str, Any],
        reconcile_fn: Callable[[], ReconcileResult],
    ) -> ReconcileResult:
        """Execute reconciliation with metrics and error handling.

        Args:
            hub: The hub being reconciled
            reconcile_fn: Function running one pass

        Returns:
            The pass outcome
        """
        emit_reconcile_started(hub)
        metrics.reconcile_total.labels(result="started").inc()

        start_time = time.time()
        try:
            result = reconcile_fn()
            metrics.reconcile_total.labels(result="success").inc()
            return result
        except Exception as e:
            sanitized_error = sanitize_exception(e)
            metrics.error_total.labels(error_type=type(e).__name__).inc()
            reason = e.reason if isinstance(e, OperatorError) else "ReconciliationFailed"
            self.log_error(hub, "Reconciliation failed", error=e, reason=reason)
            emit_reconcile_failed(hub, f"Reconciliation failed: {sanitized_error}")
            metrics.reconcile_total.labels(result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.reconcile_duration_seconds.observe(duration)
