"""Field-projection comparison between live and desired objects."""

from __future__ import annotations

import copy
from typing import Any

FieldPath = tuple[str, ...]

LABELS: FieldPath = ("metadata", "labels")
ANNOTATIONS: FieldPath = ("metadata", "annotations")

# Fields compared per kind. Anything else on the live object belongs to the
# API server or to other controllers and is never touched.
ALLOW_LISTS: dict[str, tuple[FieldPath, ...]] = {
    # apps.open-cluster-management.io and operators.coreos.com subscriptions
    "Subscription": (
        LABELS,
        ("spec", "channel"),
        ("spec", "name"),
        ("spec", "source"),
        ("spec", "sourceNamespace"),
        ("spec", "installPlanApproval"),
        ("spec", "startingCSV"),
        ("spec", "config"),
        ("spec", "packageOverrides"),
        ("spec", "placement"),
    ),
    "Deployment": (
        LABELS,
        ("spec", "replicas"),
        ("spec", "selector"),
        ("spec", "template", "spec", "containers"),
        ("spec", "template", "spec", "imagePullSecrets"),
        ("spec", "template", "spec", "nodeSelector"),
        ("spec", "template", "spec", "tolerations"),
        ("spec", "template", "spec", "affinity"),
    ),
    "Service": (
        LABELS,
        ("spec", "ports"),
        ("spec", "selector"),
    ),
    "Channel": (
        LABELS,
        ("spec", "type"),
        ("spec", "pathname"),
    ),
    "ConfigMap": (
        LABELS,
        ("data",),
    ),
    "Namespace": (LABELS,),
    "CustomResourceDefinition": (
        LABELS,
        ("spec",),
    ),
    "MultiClusterEngine": (
        LABELS,
        ANNOTATIONS,
        ("spec", "availabilityConfig"),
        ("spec", "imagePullSecret"),
        ("spec", "targetNamespace"),
        ("spec", "nodeSelector"),
        ("spec", "tolerations"),
        ("spec", "overrides"),
    ),
    "ManagedCluster": (
        LABELS,
        ("spec", "hubAcceptsClient"),
    ),
    "Console": (("spec", "plugins"),),
    "ClusterRole": (LABELS, ("rules",), ("aggregationRule",)),
    "ClusterRoleBinding": (LABELS, ("subjects",), ("roleRef",)),
    "RoleBinding": (LABELS, ("subjects",), ("roleRef",)),
}

DEFAULT_ALLOW_LIST: tuple[FieldPath, ...] = (LABELS, ("spec",), ("data",), ("rules",), ("webhooks",))

_MISSING = object()


def allow_list_for(kind: str) -> tuple[FieldPath, ...]:
    """Return the compared fields for a kind."""
    return ALLOW_LISTS.get(kind, DEFAULT_ALLOW_LIST)


def get_path(obj: dict[str, Any], path: FieldPath) -> Any:
    """Return the value at path, or a sentinel if any segment is missing."""
    current: Any = obj
    for key in path:
        if not isinstance(current, dict) or key not in current:
            return _MISSING
        current = current[key]
    return current


def set_path(obj: dict[str, Any], path: FieldPath, value: Any) -> None:
    """Set value at path, creating intermediate dicts."""
    current = obj
    for key in path[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[path[-1]] = copy.deepcopy(value)


def covers(live: Any, wanted: Any) -> bool:
    """Return True if live already satisfies wanted.

    Dicts match when every wanted key matches (extra live keys are server
    defaults or belong to someone else), a wanted None matching an absent
    key; lists match element-wise with equal length; scalars match by
    equality.
    """
    if isinstance(wanted, dict):
        if not isinstance(live, dict):
            return False
        return all(
            live.get(key) is None if value is None else key in live and covers(live[key], value)
            for key, value in wanted.items()
        )
    if isinstance(wanted, list):
        if not isinstance(live, list) or len(live) != len(wanted):
            return False
        return all(covers(lv, wv) for lv, wv in zip(live, wanted))
    return live == wanted


def apply_merge_patch(target: Any, patch: Any) -> Any:
    """Apply a JSON merge patch (RFC 7386) and return the result."""
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)
    result = copy.deepcopy(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = apply_merge_patch(result.get(key), value)
    return result


def field_delta(live: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
    """Build a merge patch holding only the allow-listed fields that differ."""
    delta: dict[str, Any] = {}
    for path in allow_list_for(desired.get("kind", "")):
        wanted = get_path(desired, path)
        if wanted is _MISSING:
            continue
        current = get_path(live, path)
        if wanted is None:
            # explicit null asks for removal
            if current is not _MISSING and current is not None:
                set_path(delta, path, None)
            continue
        if current is _MISSING or not covers(current, wanted):
            set_path(delta, path, wanted)
    return delta


def validate(live: dict[str, Any], desired: dict[str, Any]) -> tuple[dict[str, Any], bool]:
    """Compare live against desired on the allow-listed fields only.

    Args:
        live: Object as read from the cluster
        desired: Object as produced by a builder

    Returns:
        Tuple of (merged object, changed). The merged object is live with the
        differing allow-listed fields merged in from desired; when nothing
        differs it equals live and changed is False.
    """
    delta = field_delta(live, desired)
    if not delta:
        return copy.deepcopy(live), False
    return apply_merge_patch(live, delta), True
