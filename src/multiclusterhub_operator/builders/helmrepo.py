"""Builders for the hub's helm chart repository (deployment, service, channel)."""

from __future__ import annotations

from typing import Any

from ..constants import APPSUB_API_VERSION, COMPONENT_REPO, HA_HIGH, KIND_CHANNEL
from ..utils.hub import namespace_of

REPO_PORT = 3000
REPO_IMAGE_KEY = "multiclusterhub_repo"


def channel_name() -> str:
    return "charts-v1"


def _selector() -> dict[str, str]:
    return {"app": COMPONENT_REPO}


def build_deployment(hub: dict[str, Any], image_overrides: dict[str, str]) -> dict[str, Any]:
    """Build the deployment serving the bundled helm charts."""
    spec = hub.get("spec") or {}
    overrides = spec.get("overrides") or {}
    replicas = 2 if spec.get("availabilityConfig", HA_HIGH) == HA_HIGH else 1

    pod_spec: dict[str, Any] = {
        "containers": [
            {
                "name": COMPONENT_REPO,
                "image": image_overrides.get(REPO_IMAGE_KEY, ""),
                "imagePullPolicy": overrides.get("imagePullPolicy", "IfNotPresent"),
                "env": [{"name": "POD_NAMESPACE", "value": namespace_of(hub)}],
                "ports": [{"containerPort": REPO_PORT}],
                "livenessProbe": {"httpGet": {"path": "/liveness", "port": REPO_PORT}},
                "readinessProbe": {"httpGet": {"path": "/readiness", "port": REPO_PORT}},
            },
        ],
        "tolerations": spec.get("tolerations") or [],
    }
    if spec.get("imagePullSecret"):
        pod_spec["imagePullSecrets"] = [{"name": spec["imagePullSecret"]}]
    if spec.get("nodeSelector"):
        pod_spec["nodeSelector"] = spec["nodeSelector"]

    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {
            "name": COMPONENT_REPO,
            "namespace": namespace_of(hub),
            "labels": _selector(),
        },
        "spec": {
            "replicas": replicas,
            "selector": {"matchLabels": _selector()},
            "template": {
                "metadata": {"labels": _selector()},
                "spec": pod_spec,
            },
        },
    }


def build_service(hub: dict[str, Any]) -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": COMPONENT_REPO,
            "namespace": namespace_of(hub),
            "labels": _selector(),
        },
        "spec": {
            "ports": [{"port": REPO_PORT, "protocol": "TCP", "targetPort": REPO_PORT}],
            "selector": _selector(),
        },
    }


def build_channel(hub: dict[str, Any]) -> dict[str, Any]:
    """Build the helm channel pointing subscriptions at the repo service."""
    namespace = namespace_of(hub)
    return {
        "apiVersion": APPSUB_API_VERSION,
        "kind": KIND_CHANNEL,
        "metadata": {
            "name": channel_name(),
            "namespace": namespace,
        },
        "spec": {
            "type": "HelmRepo",
            "pathname": f"http://{COMPONENT_REPO}.{namespace}.svc.cluster.local:{REPO_PORT}/charts",
        },
    }
