"""Builders for hub-level resources: namespaces, self-registration, console plugin and image manifest."""

from __future__ import annotations

from typing import Any

from ..constants import (
    BACKUP_NAMESPACE,
    CONSOLE_OPERATOR_API_VERSION,
    CONSOLE_PLUGIN_NAME,
    IMAGE_MANIFEST_CM_PREFIX,
    KIND_CONSOLE,
    KIND_MANAGED_CLUSTER,
    LOCAL_CLUSTER_NAME,
    MANAGED_CLUSTER_API_VERSION,
)
from ..utils.hub import namespace_of


def build_backup_namespace() -> dict[str, Any]:
    """Namespace holding the cluster backup operator."""
    return {
        "apiVersion": "v1",
        "kind": "Namespace",
        "metadata": {
            "name": BACKUP_NAMESPACE,
            "labels": {"openshift.io/cluster-monitoring": "true"},
        },
    }


def build_local_cluster() -> dict[str, Any]:
    """ManagedCluster registering the hub as a managed target of itself."""
    return {
        "apiVersion": MANAGED_CLUSTER_API_VERSION,
        "kind": KIND_MANAGED_CLUSTER,
        "metadata": {
            "name": LOCAL_CLUSTER_NAME,
            "labels": {
                "local-cluster": "true",
                "cloud": "auto-detect",
                "vendor": "auto-detect",
            },
        },
        "spec": {"hubAcceptsClient": True},
    }


def console_plugins(console: dict[str, Any] | None) -> list[str]:
    return list(((console or {}).get("spec") or {}).get("plugins") or [])


def build_console(console: dict[str, Any] | None, enabled: bool) -> dict[str, Any]:
    """Cluster console operator config with the hub plugin added or removed.

    Args:
        console: Live console operator config, or None
        enabled: Whether the hub plugin should be registered

    Returns:
        Console body whose spec.plugins keeps every other plugin in order
    """
    plugins = [plugin for plugin in console_plugins(console) if plugin != CONSOLE_PLUGIN_NAME]
    if enabled:
        plugins.append(CONSOLE_PLUGIN_NAME)
    return {
        "apiVersion": CONSOLE_OPERATOR_API_VERSION,
        "kind": KIND_CONSOLE,
        "metadata": {"name": "cluster"},
        "spec": {"plugins": plugins},
    }


def image_manifest_name(version: str) -> str:
    return f"{IMAGE_MANIFEST_CM_PREFIX}{version}"


def build_image_manifest(hub: dict[str, Any], version: str, image_overrides: dict[str, str]) -> dict[str, Any]:
    """Config map publishing the resolved image overrides for other processes."""
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {
            "name": image_manifest_name(version),
            "namespace": namespace_of(hub),
            "labels": {"ocm-configmap-type": "image-manifest", "ocm-release-version": version},
        },
        "data": dict(sorted(image_overrides.items())),
    }
