"""Idempotent ensure-present / ensure-absent primitives for hub children."""

from __future__ import annotations

import copy
import logging
from typing import Any

from .. import metrics
from ..constants import (
    REASON_NEW_COMPONENT,
    REASON_OLD_COMPONENT_NOT_REMOVED,
    REASON_OLD_COMPONENT_REMOVED,
    REASON_UPDATED_COMPONENT,
)
from ..result import ReconcileResult
from .conditions import set_progressing_condition
from .diff import field_delta
from .errors import PermanentClusterError
from .events import emit_component_created, emit_component_deleted, emit_component_updated
from .hub import identity, installer_labels, installer_selector, meta, name_of, namespace_of, owner_reference

logger = logging.getLogger(__name__)


class Deployer:
    """Converges individual child resources of one hub.

    Every mutation of a child goes through ensure_present or ensure_absent.
    Permanent API failures are recorded as Progressing=False on the hub and
    re-raised; transient failures are re-raised untouched.
    """

    def __init__(self, client: Any, hub: dict[str, Any]) -> None:
        self.client = client
        self.hub = hub
        # identities ensured present during this pass, used by the removal sweep
        self.ensured: set[tuple[str, str, str, str]] = set()

    def _stamp(self, body: dict[str, Any]) -> None:
        metadata = meta(body)
        labels = metadata.get("labels") or {}
        labels.update(installer_labels(self.hub))
        metadata["labels"] = labels

        namespace = namespace_of(body)
        if namespace and namespace == namespace_of(self.hub):
            ref = owner_reference(self.hub)
            refs = [r for r in metadata.get("ownerReferences") or [] if r.get("uid") != ref["uid"]]
            if not any(r.get("controller") for r in refs):
                refs.append(ref)
            metadata["ownerReferences"] = refs

    def ensure_present(self, desired: dict[str, Any]) -> ReconcileResult:
        """Create the object if missing, patch differing allow-listed fields if not.

        Args:
            desired: Desired body from a builder (not modified)

        Returns:
            changed("created") or changed("updated") on a mutation, else empty
        """
        body = copy.deepcopy(desired)
        api_version, kind, namespace, name = identity(body)
        self.ensured.add((api_version, kind, namespace, name))

        try:
            live = self.client.get(api_version, kind, name, namespace or None)
            if live is None:
                self._stamp(body)
                self.client.create(body)
                metrics.resource_operations_total.labels(kind=kind, operation="create", result="success").inc()
                logger.info(f"Created {kind} {namespace}/{name}")
                set_progressing_condition(self.hub, True, REASON_NEW_COMPONENT, f"created new resource: {kind} {name}")
                emit_component_created(self.hub, kind, name)
                return ReconcileResult.changed("created")

            patch = field_delta(live, body)
            if not patch:
                return ReconcileResult.proceed()

            self.client.patch(api_version, kind, name, namespace or None, patch)
            metrics.resource_operations_total.labels(kind=kind, operation="patch", result="success").inc()
            logger.info(f"Patched {kind} {namespace}/{name} fields {sorted(patch)}")
            set_progressing_condition(self.hub, True, REASON_UPDATED_COMPONENT, f"updated resource: {kind} {name}")
            emit_component_updated(self.hub, kind, name)
            return ReconcileResult.changed("updated")
        except PermanentClusterError as e:
            metrics.resource_operations_total.labels(kind=kind, operation="apply", result="error").inc()
            set_progressing_condition(self.hub, False, e.reason, f"Error deploying {kind} {name}: {e}")
            raise

    def ensure_absent(self, desired: dict[str, Any]) -> ReconcileResult:
        """Delete the object if it exists and is not already terminating.

        Returns:
            changed("deleted") if a delete was issued, else empty
        """
        api_version, kind, namespace, name = identity(desired)
        try:
            live = self.client.get(api_version, kind, name, namespace or None)
            if live is None or meta(live).get("deletionTimestamp"):
                return ReconcileResult.proceed()
            if not self.client.delete(api_version, kind, name, namespace or None):
                return ReconcileResult.proceed()
        except PermanentClusterError as e:
            metrics.resource_operations_total.labels(kind=kind, operation="delete", result="error").inc()
            set_progressing_condition(
                self.hub, False, REASON_OLD_COMPONENT_NOT_REMOVED, f"Error removing {kind} {name}: {e}"
            )
            raise

        metrics.resource_operations_total.labels(kind=kind, operation="delete", result="success").inc()
        logger.info(f"Deleted {kind} {namespace}/{name}")
        set_progressing_condition(self.hub, True, REASON_OLD_COMPONENT_REMOVED, f"removed resource: {kind} {name}")
        emit_component_deleted(self.hub, kind, name)
        return ReconcileResult.changed("deleted")

    def ensure_absent_labeled(self, api_version: str, kind: str, namespace: str | None = None) -> int:
        """Ensure absent every object of a kind carrying the hub's identity labels.

        Returns:
            Number of objects deleted
        """
        deleted = 0
        for obj in self.client.list(api_version, kind, namespace=namespace, label_selector=installer_selector(self.hub)):
            target = {
                "apiVersion": api_version,
                "kind": kind,
                "metadata": {"name": name_of(obj), "namespace": namespace_of(obj)},
            }
            if self.ensure_absent(target):
                deleted += 1
        return deleted
