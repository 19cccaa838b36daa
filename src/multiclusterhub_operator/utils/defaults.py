"""Defaulting and migration of the MultiClusterHub spec."""

from __future__ import annotations

from typing import Any

from ..constants import (
    COMPONENT_CLUSTER_BACKUP,
    COMPONENT_CLUSTER_LIFECYCLE,
    COMPONENT_CLUSTER_PROXY_ADDON,
    COMPONENT_CONSOLE,
    COMPONENT_GRC,
    COMPONENT_INSIGHTS,
    COMPONENT_MANAGEMENT_INGRESS,
    COMPONENT_REPO,
    COMPONENT_SEARCH,
    COMPONENT_VOLSYNC,
    HA_BASIC,
    HA_HIGH,
)

DEFAULT_ENABLED_COMPONENTS = (
    COMPONENT_REPO,
    COMPONENT_MANAGEMENT_INGRESS,
    COMPONENT_CONSOLE,
    COMPONENT_INSIGHTS,
    COMPONENT_GRC,
    COMPONENT_CLUSTER_LIFECYCLE,
    COMPONENT_VOLSYNC,
    COMPONENT_SEARCH,
)

DEFAULT_DISABLED_COMPONENTS = (
    COMPONENT_CLUSTER_BACKUP,
    COMPONENT_CLUSTER_PROXY_ADDON,
)

# legacy boolean spec field -> component it toggles
LEGACY_TOGGLES = {
    "enableClusterBackup": COMPONENT_CLUSTER_BACKUP,
    "enableClusterProxyAddon": COMPONENT_CLUSTER_PROXY_ADDON,
}

DEFAULT_SSL_CIPHERS = [
    "ECDHE-ECDSA-AES256-GCM-SHA384",
    "ECDHE-RSA-AES256-GCM-SHA384",
    "ECDHE-ECDSA-AES128-GCM-SHA256",
    "ECDHE-RSA-AES128-GCM-SHA256",
]

VALID_AVAILABILITY = (HA_BASIC, HA_HIGH)


def _spec(hub: dict[str, Any]) -> dict[str, Any]:
    spec = hub.get("spec") or {}
    hub["spec"] = spec
    return spec


def _component_list(hub: dict[str, Any]) -> list[dict[str, Any]]:
    spec = _spec(hub)
    overrides = spec.get("overrides") or {}
    spec["overrides"] = overrides
    entries = overrides.get("components")
    if entries is None:
        entries = []
        overrides["components"] = entries
    return entries


def set_default_components(hub: dict[str, Any]) -> bool:
    """Add a toggle for every known component that has none. Returns True if changed."""
    entries = _component_list(hub)
    present = {entry.get("name") for entry in entries}
    changed = False
    for name in DEFAULT_ENABLED_COMPONENTS:
        if name not in present:
            entries.append({"name": name, "enabled": True})
            changed = True
    for name in DEFAULT_DISABLED_COMPONENTS:
        if name not in present:
            entries.append({"name": name, "enabled": False})
            changed = True
    return changed


def deduplicate_components(hub: dict[str, Any]) -> bool:
    """Keep the last toggle of each component. Returns True if changed."""
    entries = _component_list(hub)
    last: dict[str, dict[str, Any]] = {}
    for entry in entries:
        last[entry.get("name")] = entry
    if len(last) == len(entries):
        return False
    entries[:] = [entry for entry in entries if last[entry.get("name")] is entry]
    return True


def migrate_toggles(hub: dict[str, Any]) -> bool:
    """Move legacy boolean fields into the component list. Returns True if changed."""
    spec = _spec(hub)
    changed = False
    for field, component in LEGACY_TOGGLES.items():
        if field not in spec:
            continue
        enabled = bool(spec.pop(field))
        entries = _component_list(hub)
        for entry in entries:
            if entry.get("name") == component:
                entry["enabled"] = enabled
                break
        else:
            entries.append({"name": component, "enabled": enabled})
        changed = True
    return changed


def set_ingress_defaults(hub: dict[str, Any]) -> bool:
    spec = _spec(hub)
    ingress = spec.get("ingress") or {}
    spec["ingress"] = ingress
    if ingress.get("sslCiphers"):
        return False
    ingress["sslCiphers"] = list(DEFAULT_SSL_CIPHERS)
    return True


def set_availability_default(hub: dict[str, Any]) -> bool:
    spec = _spec(hub)
    if spec.get("availabilityConfig") in VALID_AVAILABILITY:
        return False
    spec["availabilityConfig"] = HA_HIGH
    return True


def apply_defaults(hub: dict[str, Any]) -> bool:
    """Run every defaulting rule on the hub in place. Returns True if anything changed."""
    results = [
        set_default_components(hub),
        deduplicate_components(hub),
        migrate_toggles(hub),
        set_ingress_defaults(hub),
        set_availability_default(hub),
    ]
    return any(results)
