"""Status computation and persistence for the hub."""

from __future__ import annotations

import copy
import logging
from typing import Any

from ..components import COMPONENTS
from ..config import OperatorConfig
from ..constants import (
    COND_COMPLETE,
    PHASE_INSTALLING,
    PHASE_PAUSED,
    PHASE_PENDING,
    PHASE_RUNNING,
    PHASE_UNINSTALLING,
    PHASE_UPDATING,
    REASON_COMPONENTS_AVAILABLE,
    REASON_COMPONENTS_UNAVAILABLE,
)
from ..result import ReconcileResult
from ..utils.cache import CacheSpec
from ..utils.conditions import hub_conditions, set_condition
from ..utils.hub import identity, installer_selector, is_deleting, is_enabled, is_paused, name_of, tracked_namespaces

logger = logging.getLogger(__name__)

# app subscription phases meaning the chart was handed to helm
SUBSCRIBED_PHASES = {"Subscribed", "Propagated"}


def _version_tuple(version: str) -> tuple[int, ...]:
    parts = []
    for part in version.split("."):
        digits = "".join(ch for ch in part if ch.isdigit())
        if not digits:
            break
        parts.append(int(digits))
    return tuple(parts)


def plugin_supported(platform_version: str, minimum: str) -> bool:
    """Return True if the platform version is known and at least minimum."""
    if not platform_version:
        return False
    return _version_tuple(platform_version) >= _version_tuple(minimum)


def deployment_available(deployment: dict[str, Any]) -> bool:
    """Return True if a deployment has all desired replicas available."""
    status = deployment.get("status") or {}
    for cond in status.get("conditions") or []:
        if cond.get("type") == "Available" and cond.get("status") == "False":
            return False
    desired = (deployment.get("spec") or {}).get("replicas", 1)
    return status.get("availableReplicas", 0) >= desired


def resource_ready(obj: dict[str, Any]) -> bool:
    kind = obj.get("kind")
    if kind == "Deployment":
        return deployment_available(obj)
    if kind == "Subscription":
        return (obj.get("status") or {}).get("phase") in SUBSCRIBED_PHASES
    return True


def _status_entry(kind: str, ready: bool, message: str) -> dict[str, Any]:
    return {
        "kind": kind,
        "type": "Available",
        "status": "True" if ready else "False",
        "reason": REASON_COMPONENTS_AVAILABLE if ready else REASON_COMPONENTS_UNAVAILABLE,
        "message": message,
    }


class StatusSync:
    """Computes component health, phase and the Complete condition, and persists status."""

    def __init__(self, client: Any, config: OperatorConfig, cache: CacheSpec) -> None:
        self.client = client
        self.config = config
        self.cache = cache

    def component_health(self, hub: dict[str, Any]) -> dict[str, dict[str, Any]]:
        """Return the health entry of every enabled component and labeled deployment."""
        health: dict[str, dict[str, Any]] = {}
        for component in COMPONENTS:
            if not is_enabled(hub, component.name):
                continue
            missing = []
            for body in component.render(hub, self.cache):
                api_version, kind, namespace, name = identity(body)
                live = self.client.get(api_version, kind, name, namespace or None)
                if live is None or not resource_ready(live):
                    missing.append(f"{kind} {name}")
            ready = not missing
            message = "Component is ready" if ready else f"Waiting for {', '.join(missing)}"
            health[component.name] = _status_entry("Component", ready, message)

        for namespace in tracked_namespaces(hub):
            for deployment in self.client.list("apps/v1", "Deployment", namespace, installer_selector(hub)):
                ready = deployment_available(deployment)
                message = "Deployment is available" if ready else "Deployment does not have minimum availability"
                health.setdefault(name_of(deployment), _status_entry("Deployment", ready, message))
        return health

    @staticmethod
    def all_healthy(health: dict[str, dict[str, Any]]) -> bool:
        return all(entry["status"] == "True" for entry in health.values())

    def _phase(self, hub: dict[str, Any], healthy: bool) -> str:
        status = hub.get("status") or {}
        if is_deleting(hub):
            return PHASE_UNINSTALLING
        if is_paused(hub):
            return PHASE_PAUSED
        if healthy:
            return PHASE_RUNNING
        current = status.get("currentVersion", "")
        if not current:
            return PHASE_INSTALLING
        if current != self.config.version:
            return PHASE_UPDATING
        return PHASE_PENDING

    def compute(self, hub: dict[str, Any]) -> bool:
        """Update hub status in place. Returns True if every component is healthy."""
        status = hub.get("status") or {}
        hub["status"] = status
        status["desiredVersion"] = self.config.version

        if is_deleting(hub):
            hub_conditions(hub)
            status["phase"] = PHASE_UNINSTALLING
            return False

        health = self.component_health(hub)
        healthy = self.all_healthy(health)
        status["components"] = health
        status["phase"] = self._phase(hub, healthy)

        if healthy:
            set_condition(
                hub_conditions(hub), COND_COMPLETE, "True", REASON_COMPONENTS_AVAILABLE, "All hub components ready."
            )
            if status.get("currentVersion") != self.config.version:
                logger.info(f"Hub {name_of(hub)} reached version {self.config.version}")
                status["currentVersion"] = self.config.version
        else:
            set_condition(
                hub_conditions(hub),
                COND_COMPLETE,
                "False",
                REASON_COMPONENTS_UNAVAILABLE,
                "Not all hub components ready.",
            )
        return healthy

    def sync(self, hub: dict[str, Any], previous_status: dict[str, Any] | None) -> ReconcileResult:
        """Compute status and persist it if it differs from previous_status.

        Returns:
            A delayed requeue while the hub is converging, else an empty result
        """
        healthy = self.compute(hub)
        previous_status = previous_status or {}
        if hub["status"] != previous_status:
            self.client.patch_status(self._status_patch(hub, previous_status))
        if healthy or is_deleting(hub) or is_paused(hub):
            return ReconcileResult.proceed()
        return ReconcileResult.after(self.config.resync_period, "waiting-for-components")

    @staticmethod
    def _status_patch(hub: dict[str, Any], previous_status: dict[str, Any]) -> dict[str, Any]:
        status = copy.deepcopy(hub["status"])
        # merge patches keep keys that are not nulled out
        components = status.get("components")
        if components is not None:
            for key in previous_status.get("components") or {}:
                components.setdefault(key, None)
        return {
            "apiVersion": hub.get("apiVersion"),
            "kind": hub.get("kind"),
            "metadata": {"name": name_of(hub), "namespace": hub["metadata"].get("namespace")},
            "status": status,
        }

    @staticmethod
    def snapshot(hub: dict[str, Any]) -> dict[str, Any]:
        return copy.deepcopy(hub.get("status") or {})
