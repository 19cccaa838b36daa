"""Builder for the MultiClusterEngine backing the hub."""

from __future__ import annotations

from typing import Any

from ..constants import (
    ANNOTATION_ADOPTED_BY,
    COMPONENT_CLUSTER_PROXY_ADDON,
    ENGINE_API_VERSION,
    ENGINE_DEFAULT_NAME,
    HA_HIGH,
    KIND_ENGINE,
)
from ..utils.hub import annotations_of, installer_labels, is_enabled, name_of, namespace_of

ENGINE_TARGET_NAMESPACE = "multicluster-engine"

# hub components that the engine deploys itself
ENGINE_COMPONENTS = (COMPONENT_CLUSTER_PROXY_ADDON,)


def adoption_marker(hub: dict[str, Any]) -> str:
    return f"{namespace_of(hub)}/{name_of(hub)}"


def is_adopted_by(engine: dict[str, Any], hub: dict[str, Any]) -> bool:
    """Return True if the engine pre-existed the hub and was adopted by it."""
    return annotations_of(engine).get(ANNOTATION_ADOPTED_BY) == adoption_marker(hub)


def build_engine(hub: dict[str, Any], name: str = ENGINE_DEFAULT_NAME, adopted: bool = False) -> dict[str, Any]:
    """Build the MultiClusterEngine mirroring the hub's settings.

    An engine created by the hub carries the hub's identity labels and is
    deleted on teardown. An adopted engine is marked by annotation instead
    and is only released on teardown.

    Args:
        hub: MultiClusterHub body
        name: Engine name; an existing engine is adopted under its own name
        adopted: Whether the engine existed before the hub

    Returns:
        MultiClusterEngine body
    """
    spec = hub.get("spec") or {}
    engine_spec: dict[str, Any] = {
        "availabilityConfig": spec.get("availabilityConfig", HA_HIGH),
        "imagePullSecret": spec.get("imagePullSecret", ""),
        "targetNamespace": ENGINE_TARGET_NAMESPACE,
        "tolerations": spec.get("tolerations") or [],
        "overrides": {
            "components": [
                {"name": component, "enabled": is_enabled(hub, component)} for component in ENGINE_COMPONENTS
            ],
        },
    }
    if spec.get("nodeSelector"):
        engine_spec["nodeSelector"] = spec["nodeSelector"]

    metadata: dict[str, Any] = {"name": name}
    if adopted:
        metadata["annotations"] = {ANNOTATION_ADOPTED_BY: adoption_marker(hub)}
    else:
        metadata["labels"] = installer_labels(hub)

    return {
        "apiVersion": ENGINE_API_VERSION,
        "kind": KIND_ENGINE,
        "metadata": metadata,
        "spec": engine_spec,
    }


def released_engine(engine: dict[str, Any]) -> dict[str, Any]:
    """Return a body that drops the adoption marker from an engine."""
    return {
        "apiVersion": ENGINE_API_VERSION,
        "kind": KIND_ENGINE,
        "metadata": {
            "name": name_of(engine),
            "annotations": {ANNOTATION_ADOPTED_BY: None},
        },
    }
