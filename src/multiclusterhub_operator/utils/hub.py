"""Accessors for MultiClusterHub resource dicts."""

from __future__ import annotations

from typing import Any

from ..constants import (
    ANNOTATION_IMAGE_OVERRIDES_CM,
    ANNOTATION_IMAGE_REPO,
    ANNOTATION_PAUSE,
    API_GROUP_VERSION,
    FINALIZER,
    KIND_HUB,
    LABEL_INSTALLER_NAME,
    LABEL_INSTALLER_NAMESPACE,
)


def meta(obj: dict[str, Any]) -> dict[str, Any]:
    """Return an object's metadata, creating it if needed."""
    metadata = obj.get("metadata")
    if metadata is None:
        metadata = {}
        obj["metadata"] = metadata
    return metadata


def name_of(obj: dict[str, Any]) -> str:
    return (obj.get("metadata") or {}).get("name", "")


def namespace_of(obj: dict[str, Any]) -> str:
    return (obj.get("metadata") or {}).get("namespace", "") or ""


def annotations_of(obj: dict[str, Any]) -> dict[str, str]:
    return (obj.get("metadata") or {}).get("annotations") or {}


def labels_of(obj: dict[str, Any]) -> dict[str, str]:
    return (obj.get("metadata") or {}).get("labels") or {}


def components(hub: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the component toggles of spec.overrides.components."""
    overrides = (hub.get("spec") or {}).get("overrides") or {}
    return overrides.get("components") or []


def is_enabled(hub: dict[str, Any], component: str) -> bool:
    """Return True if the named component is toggled on."""
    for entry in components(hub):
        if entry.get("name") == component:
            return bool(entry.get("enabled"))
    return False


def is_paused(hub: dict[str, Any]) -> bool:
    """Return True if reconciliation is suspended by the pause annotation."""
    return annotations_of(hub).get(ANNOTATION_PAUSE, "").lower() == "true"


def image_repository(hub: dict[str, Any]) -> str:
    return annotations_of(hub).get(ANNOTATION_IMAGE_REPO, "")


def image_overrides_configmap(hub: dict[str, Any]) -> str:
    return annotations_of(hub).get(ANNOTATION_IMAGE_OVERRIDES_CM, "")


def is_deleting(hub: dict[str, Any]) -> bool:
    return bool((hub.get("metadata") or {}).get("deletionTimestamp"))


def has_finalizer(hub: dict[str, Any]) -> bool:
    return FINALIZER in ((hub.get("metadata") or {}).get("finalizers") or [])


def tracked_namespaces(hub: dict[str, Any]) -> list[str]:
    """Namespaces whose deployments make up the hub's health."""
    return [namespace_of(hub)]


def installer_labels(hub: dict[str, Any]) -> dict[str, str]:
    """Identity labels stamped on every child of the hub."""
    return {
        LABEL_INSTALLER_NAME: name_of(hub),
        LABEL_INSTALLER_NAMESPACE: namespace_of(hub),
    }


def installer_selector(hub: dict[str, Any]) -> str:
    """Label selector matching children of the hub."""
    return ",".join(f"{k}={v}" for k, v in installer_labels(hub).items())


def owner_reference(hub: dict[str, Any]) -> dict[str, Any]:
    """Controller owner reference pointing at the hub."""
    return {
        "apiVersion": API_GROUP_VERSION,
        "kind": KIND_HUB,
        "name": name_of(hub),
        "uid": (hub.get("metadata") or {}).get("uid", ""),
        "controller": True,
        "blockOwnerDeletion": True,
    }


def is_owned_by(obj: dict[str, Any], hub: dict[str, Any]) -> bool:
    """Return True if obj carries a controller reference to this hub."""
    uid = (hub.get("metadata") or {}).get("uid")
    for ref in (obj.get("metadata") or {}).get("ownerReferences") or []:
        if ref.get("kind") == KIND_HUB and ref.get("uid") == uid:
            return True
    return False


def is_labeled_for(obj: dict[str, Any], hub: dict[str, Any]) -> bool:
    """Return True if obj carries the hub's identity labels."""
    labels = labels_of(obj)
    return all(labels.get(k) == v for k, v in installer_labels(hub).items())


def identity(obj: dict[str, Any]) -> tuple[str, str, str, str]:
    """Key identifying an object across kinds: (apiVersion, kind, namespace, name)."""
    return (obj.get("apiVersion", ""), obj.get("kind", ""), namespace_of(obj), name_of(obj))
