"""Builders for component app subscriptions."""

from __future__ import annotations

import json
import logging
from typing import Any

from ..constants import (
    ANNOTATION_OADP_SUBSCRIPTION,
    APPSUB_API_VERSION,
    BACKUP_NAMESPACE,
    COMPONENT_CLUSTER_BACKUP,
    COMPONENT_CLUSTER_LIFECYCLE,
    COMPONENT_CLUSTER_PROXY_ADDON,
    COMPONENT_CONSOLE,
    COMPONENT_GRC,
    COMPONENT_INSIGHTS,
    COMPONENT_MANAGEMENT_INGRESS,
    COMPONENT_SEARCH,
    COMPONENT_VOLSYNC,
    HA_HIGH,
    KIND_SUBSCRIPTION,
)
from ..utils.hub import annotations_of, namespace_of
from .helmrepo import channel_name

logger = logging.getLogger(__name__)

# component -> (chart name, image keys passed to the chart)
CHARTS: dict[str, tuple[str, tuple[str, ...]]] = {
    COMPONENT_MANAGEMENT_INGRESS: ("management-ingress", ("management_ingress", "oauth_proxy")),
    COMPONENT_CONSOLE: ("console-chart", ("console",)),
    COMPONENT_INSIGHTS: ("insights-chart", ("insights_client", "insights_metrics")),
    COMPONENT_GRC: ("grc", ("governance_policy_propagator", "grc_ui", "grc_ui_api")),
    COMPONENT_CLUSTER_LIFECYCLE: ("cluster-lifecycle", ("cluster_curator_controller", "clusterclaims_controller")),
    COMPONENT_VOLSYNC: ("volsync-addon-controller", ("volsync_addon_controller",)),
    COMPONENT_SEARCH: ("search-prod", ("search_collector", "search_indexer", "search_api")),
    COMPONENT_CLUSTER_BACKUP: ("cluster-backup-chart", ("cluster_backup_controller",)),
    COMPONENT_CLUSTER_PROXY_ADDON: ("cluster-proxy-addon", ("cluster_proxy_addon", "cluster_proxy")),
}

# charts that render routes or callbacks and need the ingress domain
INGRESS_CHARTS = {
    COMPONENT_MANAGEMENT_INGRESS,
    COMPONENT_CONSOLE,
    COMPONENT_INSIGHTS,
    COMPONENT_CLUSTER_PROXY_ADDON,
}

DEFAULT_OADP_SPEC = {
    "channel": "stable-1.0",
    "installPlanApproval": "Automatic",
    "name": "redhat-oadp-operator",
    "source": "redhat-operators",
    "sourceNamespace": "openshift-marketplace",
}


def subscription_name(component: str) -> str:
    return f"{CHARTS[component][0]}-sub"


def chart_values(
    hub: dict[str, Any],
    component: str,
    image_overrides: dict[str, str],
    ingress_domain: str = "",
) -> dict[str, Any]:
    """Build the helm values passed to a component chart."""
    spec = hub.get("spec") or {}
    overrides = spec.get("overrides") or {}
    replicas = 2 if spec.get("availabilityConfig", HA_HIGH) == HA_HIGH else 1
    _, image_keys = CHARTS[component]

    values: dict[str, Any] = {
        "global": {
            "imageOverrides": {key: image_overrides[key] for key in image_keys if key in image_overrides},
            "pullPolicy": overrides.get("imagePullPolicy", "IfNotPresent"),
            "pullSecret": spec.get("imagePullSecret", ""),
            "customCAConfigmap": spec.get("customCAConfigmap", ""),
        },
        "hubconfig": {
            "replicaCount": replicas,
            "tolerations": spec.get("tolerations") or [],
        },
    }
    if spec.get("nodeSelector"):
        values["hubconfig"]["nodeSelector"] = spec["nodeSelector"]
    if component in INGRESS_CHARTS:
        values["global"]["ingressDomain"] = ingress_domain
    if component == COMPONENT_MANAGEMENT_INGRESS:
        values["ingress"] = {"sslCiphers": (spec.get("ingress") or {}).get("sslCiphers") or []}
    if component == COMPONENT_CLUSTER_BACKUP:
        values["oadpSubscription"] = oadp_subscription_spec(hub)
    return values


def oadp_subscription_spec(hub: dict[str, Any]) -> dict[str, Any]:
    """Return the OADP operator subscription spec, honouring the override annotation."""
    raw = annotations_of(hub).get(ANNOTATION_OADP_SUBSCRIPTION)
    if not raw:
        return dict(DEFAULT_OADP_SPEC)
    try:
        custom = json.loads(raw)
    except ValueError as e:
        logger.warning(f"Ignoring invalid {ANNOTATION_OADP_SUBSCRIPTION} annotation: {e}")
        return dict(DEFAULT_OADP_SPEC)
    if not isinstance(custom, dict):
        logger.warning(f"Ignoring {ANNOTATION_OADP_SUBSCRIPTION} annotation, expected an object")
        return dict(DEFAULT_OADP_SPEC)
    return {**DEFAULT_OADP_SPEC, **custom}


def build_subscription(
    hub: dict[str, Any],
    component: str,
    image_overrides: dict[str, str],
    ingress_domain: str = "",
) -> dict[str, Any]:
    """Build the app subscription deploying a component chart from the hub's helm repo.

    Args:
        hub: MultiClusterHub body
        component: Component name, a key of CHARTS
        image_overrides: Resolved image overrides
        ingress_domain: Cluster ingress domain, used by charts exposing routes

    Returns:
        Subscription body
    """
    chart, _ = CHARTS[component]
    namespace = BACKUP_NAMESPACE if component == COMPONENT_CLUSTER_BACKUP else namespace_of(hub)
    return {
        "apiVersion": APPSUB_API_VERSION,
        "kind": KIND_SUBSCRIPTION,
        "metadata": {
            "name": subscription_name(component),
            "namespace": namespace,
        },
        "spec": {
            "channel": f"{namespace_of(hub)}/{channel_name()}",
            "name": chart,
            "placement": {"local": True},
            "packageOverrides": [
                {
                    "packageName": chart,
                    "packageAlias": chart,
                    "packageOverrides": [
                        {"path": "spec", "value": chart_values(hub, component, image_overrides, ingress_domain)},
                    ],
                },
            ],
        },
    }


def legacy_subscription(name: str, namespace: str) -> dict[str, Any]:
    """Reference to a subscription that older releases created and this one must remove."""
    return {
        "apiVersion": APPSUB_API_VERSION,
        "kind": KIND_SUBSCRIPTION,
        "metadata": {"name": name, "namespace": namespace},
    }
