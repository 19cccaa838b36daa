"""Shared fixtures: an in-memory cluster and a MultiClusterHub factory."""

from __future__ import annotations

import copy
from typing import Any
from unittest.mock import patch

import pytest

from multiclusterhub_operator.config import OperatorConfig
from multiclusterhub_operator.constants import API_GROUP_VERSION, KIND_HUB
from multiclusterhub_operator.utils.diff import apply_merge_patch
from multiclusterhub_operator.utils.errors import PermanentClusterError, TransientClusterError

HUB_NAMESPACE = "open-cluster-management"
HUB_NAME = "multiclusterhub"

CRD_YAML = """\
apiVersion: apiextensions.k8s.io/v1
kind: CustomResourceDefinition
metadata:
  name: multiclusterhubs.operator.open-cluster-management.io
spec:
  group: operator.open-cluster-management.io
  names:
    kind: MultiClusterHub
    plural: multiclusterhubs
  scope: Namespaced
"""

TEMPLATE_YAML = """\
apiVersion: rbac.authorization.k8s.io/v1
kind: ClusterRole
metadata:
  name: open-cluster-management:hub-reader
rules:
- apiGroups: ["operator.open-cluster-management.io"]
  resources: ["multiclusterhubs"]
  verbs: ["get", "list", "watch"]
"""


def _matches(labels: dict[str, str], selector: str | None) -> bool:
    if not selector:
        return True
    for term in selector.split(","):
        key, _, value = term.partition("=")
        if labels.get(key) != value:
            return False
    return True


class FakeCluster:
    """In-memory stand-in for ClusterClient.

    Objects are stored as plain dicts keyed by (apiVersion, kind, namespace,
    name). Writes are recorded in ``mutations`` and can be made to fail with
    ``fail_on``.
    """

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str, str, str], dict[str, Any]] = {}
        self.mutations: list[tuple[str, str, str, str]] = []
        self._failures: dict[tuple[str, str], Exception] = {}
        self._version = 0

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    @staticmethod
    def _key(api_version: str, kind: str, name: str, namespace: str | None) -> tuple[str, str, str, str]:
        return (api_version, kind, namespace or "", name)

    def _maybe_fail(self, operation: str, kind: str) -> None:
        error = self._failures.get((operation, kind))
        if error is not None:
            raise error

    def _record(self, operation: str, kind: str, namespace: str | None, name: str) -> None:
        self.mutations.append((operation, kind, namespace or "", name))

    def fail_on(self, operation: str, kind: str, error: Exception) -> None:
        self._failures[(operation, kind)] = error

    def clear_failures(self) -> None:
        self._failures.clear()

    def add(self, obj: dict[str, Any]) -> dict[str, Any]:
        """Store an object directly, without recording a mutation."""
        obj = copy.deepcopy(obj)
        meta = obj.setdefault("metadata", {})
        meta.setdefault("resourceVersion", self._next_version())
        meta.setdefault("uid", f"uid-{meta['name']}")
        key = self._key(obj["apiVersion"], obj["kind"], meta["name"], meta.get("namespace"))
        self.objects[key] = obj
        return obj

    def stored(self, api_version: str, kind: str, name: str, namespace: str | None = None) -> dict[str, Any] | None:
        return self.objects.get(self._key(api_version, kind, name, namespace))

    def writes(self, operation: str | None = None, kind: str | None = None) -> list[tuple[str, str, str, str]]:
        return [
            m for m in self.mutations
            if (operation is None or m[0] == operation) and (kind is None or m[1] == kind)
        ]

    def mark_ready(self) -> None:
        """Make every deployment available and every app subscription subscribed."""
        for (_, kind, _, _), obj in self.objects.items():
            if kind == "Deployment":
                replicas = (obj.get("spec") or {}).get("replicas", 1)
                obj["status"] = {"availableReplicas": replicas}
            elif kind == "Subscription":
                obj["status"] = {"phase": "Subscribed"}

    # ClusterClient surface

    def get(self, api_version: str, kind: str, name: str, namespace: str | None = None) -> dict[str, Any] | None:
        self._maybe_fail("get", kind)
        obj = self.objects.get(self._key(api_version, kind, name, namespace))
        return copy.deepcopy(obj) if obj is not None else None

    def list(
        self,
        api_version: str,
        kind: str,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> list[dict[str, Any]]:
        self._maybe_fail("list", kind)
        items = []
        for (obj_api_version, obj_kind, obj_namespace, _), obj in sorted(self.objects.items()):
            if obj_api_version != api_version or obj_kind != kind:
                continue
            if namespace and obj_namespace != namespace:
                continue
            if not _matches((obj.get("metadata") or {}).get("labels") or {}, label_selector):
                continue
            items.append(copy.deepcopy(obj))
        return items

    def create(self, body: dict[str, Any]) -> dict[str, Any]:
        self._maybe_fail("create", body["kind"])
        meta = body["metadata"]
        key = self._key(body["apiVersion"], body["kind"], meta["name"], meta.get("namespace"))
        if key in self.objects:
            raise TransientClusterError(f"{body['kind']} {meta['name']} already exists", status=409)
        self._record("create", body["kind"], meta.get("namespace"), meta["name"])
        return copy.deepcopy(self.add(body))

    def patch(
        self,
        api_version: str,
        kind: str,
        name: str,
        namespace: str | None,
        patch: dict[str, Any],
    ) -> dict[str, Any]:
        self._maybe_fail("patch", kind)
        key = self._key(api_version, kind, name, namespace)
        if key not in self.objects:
            raise PermanentClusterError(f"{kind} {name} not found", status=404)
        self._record("patch", kind, namespace, name)
        obj = apply_merge_patch(self.objects[key], patch)
        obj["metadata"]["resourceVersion"] = self._next_version()
        meta = obj["metadata"]
        if meta.get("deletionTimestamp") and not meta.get("finalizers"):
            del self.objects[key]
        else:
            self.objects[key] = obj
        return copy.deepcopy(obj)

    def update(self, body: dict[str, Any]) -> dict[str, Any]:
        self._maybe_fail("update", body["kind"])
        meta = body["metadata"]
        key = self._key(body["apiVersion"], body["kind"], meta["name"], meta.get("namespace"))
        live = self.objects.get(key)
        if live is None:
            raise PermanentClusterError(f"{body['kind']} {meta['name']} not found", status=404)
        if meta.get("resourceVersion") and meta["resourceVersion"] != live["metadata"]["resourceVersion"]:
            raise TransientClusterError(f"{body['kind']} {meta['name']} was modified", status=409)
        self._record("update", body["kind"], meta.get("namespace"), meta["name"])
        obj = copy.deepcopy(body)
        # the main resource endpoint ignores status
        obj["status"] = copy.deepcopy(live.get("status"))
        obj["metadata"]["resourceVersion"] = self._next_version()
        self.objects[key] = obj
        return copy.deepcopy(obj)

    def patch_status(self, body: dict[str, Any]) -> dict[str, Any] | None:
        self._maybe_fail("patch_status", body["kind"])
        meta = body["metadata"]
        key = self._key(body["apiVersion"], body["kind"], meta["name"], meta.get("namespace"))
        live = self.objects.get(key)
        if live is None:
            return None
        self._record("patch_status", body["kind"], meta.get("namespace"), meta["name"])
        live["status"] = apply_merge_patch(live.get("status") or {}, body.get("status") or {})
        return copy.deepcopy(live)

    def delete(self, api_version: str, kind: str, name: str, namespace: str | None = None) -> bool:
        self._maybe_fail("delete", kind)
        key = self._key(api_version, kind, name, namespace)
        obj = self.objects.get(key)
        if obj is None:
            return False
        self._record("delete", kind, namespace, name)
        if obj["metadata"].get("finalizers"):
            obj["metadata"]["deletionTimestamp"] = "2024-01-01T00:00:00Z"
        else:
            del self.objects[key]
        return True


def make_hub(
    components: list[dict[str, Any]] | None = None,
    annotations: dict[str, str] | None = None,
    status: dict[str, Any] | None = None,
    **spec: Any,
) -> dict[str, Any]:
    """Build a MultiClusterHub body."""
    hub: dict[str, Any] = {
        "apiVersion": API_GROUP_VERSION,
        "kind": KIND_HUB,
        "metadata": {
            "name": HUB_NAME,
            "namespace": HUB_NAMESPACE,
            "uid": "hub-uid",
        },
        "spec": dict(spec),
    }
    if components is not None:
        hub["spec"]["overrides"] = {"components": components}
    if annotations:
        hub["metadata"]["annotations"] = annotations
    if status is not None:
        hub["status"] = status
    return hub


def make_deployment(name: str, namespace: str, available: bool = True, labels: dict[str, str] | None = None) -> dict[str, Any]:
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": name, "namespace": namespace, "labels": labels or {}},
        "spec": {"replicas": 1},
        "status": {"availableReplicas": 1 if available else 0},
    }


@pytest.fixture(autouse=True)
def mock_kopf_event():
    """Events are posted through kopf, which needs a running operator."""
    with patch("multiclusterhub_operator.utils.events.kopf.event") as mock_event:
        yield mock_event


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def manifest_dirs(tmp_path):
    """CRD and template directories holding one file each."""
    crds = tmp_path / "crds"
    crds.mkdir()
    (crds / "multiclusterhub.yaml").write_text(CRD_YAML)
    templates = tmp_path / "templates"
    base = templates / "multiclusterhub" / "base"
    base.mkdir(parents=True)
    (base / "hub-reader.yaml").write_text(TEMPLATE_YAML)
    return str(crds), str(templates)


@pytest.fixture
def operator_config(manifest_dirs) -> OperatorConfig:
    crds, templates = manifest_dirs
    return OperatorConfig(
        crds_path=crds,
        templates_path=templates,
        version="2.5.0",
        unit_test=True,
        resync_period=20.0,
        operand_images={
            "multiclusterhub_repo": "quay.io/stolostron/multiclusterhub-repo:2.5.0",
            "console": "quay.io/stolostron/console:2.5.0",
            "search_api": "quay.io/stolostron/search-api:2.5.0",
        },
    )


@pytest.fixture
def hub_cluster(cluster, operator_config) -> FakeCluster:
    """Cluster with a running subscription operator."""
    cluster.add(make_deployment(operator_config.subscription_operator_deployment, HUB_NAMESPACE))
    return cluster
