"""Correlation of watch events to hub reconcile requests."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from .. import metrics
from ..constants import API_GROUP, API_GROUP_VERSION, KIND_HUB, LABEL_INSTALLER_NAME, LABEL_INSTALLER_NAMESPACE, PLURAL_HUB
from ..utils.hub import labels_of, name_of, namespace_of

logger = logging.getLogger(__name__)

# (namespace, name) of a hub
Request = tuple[str, str]

EVENT_ADDED = "ADDED"
EVENT_MODIFIED = "MODIFIED"
EVENT_DELETED = "DELETED"

Correlator = Callable[[dict[str, Any], Any], list[Request]]
Predicate = Callable[[str, dict[str, Any]], bool]


def correlate_self(obj: dict[str, Any], client: Any) -> list[Request]:
    return [(namespace_of(obj), name_of(obj))]


def correlate_by_owner(obj: dict[str, Any], client: Any) -> list[Request]:
    """Request the hub named by a controller owner reference."""
    for ref in (obj.get("metadata") or {}).get("ownerReferences") or []:
        if ref.get("kind") == KIND_HUB and (ref.get("apiVersion") or "").split("/")[0] == API_GROUP:
            return [(namespace_of(obj), ref.get("name", ""))]
    return []


def correlate_by_labels(obj: dict[str, Any], client: Any) -> list[Request]:
    """Request the hub named by the installer identity labels."""
    labels = labels_of(obj)
    name = labels.get(LABEL_INSTALLER_NAME)
    namespace = labels.get(LABEL_INSTALLER_NAMESPACE)
    if not name or not namespace:
        return []
    return [(namespace, name)]


def correlate_singleton(obj: dict[str, Any], client: Any) -> list[Request]:
    """Request the only hub in the cluster, if there is exactly one."""
    hubs = client.list(API_GROUP_VERSION, KIND_HUB)
    if len(hubs) != 1:
        if hubs:
            logger.warning(f"Found {len(hubs)} MultiClusterHubs, not correlating cluster-wide event")
        return []
    return [(namespace_of(hubs[0]), name_of(hubs[0]))]


class GenerationChanged:
    """Drops update events that did not change metadata.generation."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generations: dict[str, Any] = {}

    def __call__(self, event_type: str, obj: dict[str, Any]) -> bool:
        metadata = obj.get("metadata") or {}
        uid = metadata.get("uid") or f"{namespace_of(obj)}/{name_of(obj)}"
        generation = metadata.get("generation")
        with self._lock:
            if event_type == EVENT_DELETED:
                self._generations.pop(uid, None)
                return True
            previous = self._generations.get(uid)
            self._generations[uid] = generation
        if event_type != EVENT_MODIFIED:
            return True
        return previous is None or previous != generation


def deletes_only(event_type: str, obj: dict[str, Any]) -> bool:
    return event_type == EVENT_DELETED


def has_installer_labels(event_type: str, obj: dict[str, Any]) -> bool:
    labels = labels_of(obj)
    return bool(labels.get(LABEL_INSTALLER_NAME)) and bool(labels.get(LABEL_INSTALLER_NAMESPACE))


@dataclass(frozen=True)
class Watch:
    """One watched kind with its correlation strategy and event filters."""

    name: str
    group: str
    version: str
    plural: str
    correlate: Correlator
    predicates: tuple[Predicate, ...] = field(default_factory=tuple)

    def requests(self, event_type: str | None, obj: dict[str, Any], client: Any) -> list[Request]:
        """Return the hub requests implied by an event.

        Args:
            event_type: ADDED, MODIFIED or DELETED; None for the initial listing
            obj: The event object
            client: Cluster client, used by correlators that list hubs

        Returns:
            Zero or more (namespace, name) requests
        """
        event_type = event_type or EVENT_ADDED
        for predicate in self.predicates:
            if not predicate(event_type, obj):
                metrics.watch_events_total.labels(watch=self.name, result="filtered").inc()
                return []
        requests = [req for req in self.correlate(obj, client) if req[0] and req[1]]
        metrics.watch_events_total.labels(watch=self.name, result="enqueued" if requests else "uncorrelated").inc()
        return requests


def build_watches() -> list[Watch]:
    """Watches registered at startup, with fresh predicate state."""
    return [
        Watch("multiclusterhub", API_GROUP, "v1", PLURAL_HUB, correlate_self, (GenerationChanged(),)),
        Watch("owned-deployments", "apps", "v1", "deployments", correlate_by_owner),
        Watch(
            "owned-subscriptions",
            "apps.open-cluster-management.io",
            "v1",
            "subscriptions",
            correlate_by_owner,
        ),
        Watch("owned-configmaps", "", "v1", "configmaps", correlate_by_owner),
        Watch("apiservices", "apiregistration.k8s.io", "v1", "apiservices", correlate_by_labels, (deletes_only,)),
        Watch(
            "labeled-deployments",
            "apps",
            "v1",
            "deployments",
            correlate_by_labels,
            (has_installer_labels,),
        ),
        Watch("clusterversions", "config.openshift.io", "v1", "clusterversions", correlate_singleton),
    ]
