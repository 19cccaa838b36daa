"""Kubernetes cluster client used by the reconciler."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import ResourceNotFoundError

from ... import metrics
from ...constants import FIELD_MANAGER
from ...utils.errors import TransientClusterError, classify_api_exception
from ...utils.rate_limit import rate_limit_k8s

logger = logging.getLogger(__name__)

MERGE_PATCH = "application/merge-patch+json"


def load_kube_config() -> None:
    """Load in-cluster config, falling back to the local kubeconfig."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()


class ClusterClient:
    """Thin wrapper over the dynamic client working on plain dicts.

    Reads return None (or an empty list) for missing objects and for kinds the
    API server does not serve. Writes translate API failures into
    TransientClusterError or PermanentClusterError.
    """

    def __init__(self, api_client: client.ApiClient | None = None) -> None:
        self._dynamic = DynamicClient(api_client or client.ApiClient())

    def _resource(self, api_version: str, kind: str) -> Any:
        return self._dynamic.resources.get(api_version=api_version, kind=kind)

    def _call(self, operation: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
        start_time = time.time()
        try:
            result = rate_limit_k8s(fn)(**kwargs)
            metrics.api_call_total.labels(operation=operation, result="success").inc()
            return result
        except ApiException:
            metrics.api_call_total.labels(operation=operation, result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(operation=operation).observe(duration)

    def get(
        self, api_version: str, kind: str, name: str, namespace: str | None = None
    ) -> dict[str, Any] | None:
        """Get an object by name, or None if it does not exist."""
        try:
            resource = self._resource(api_version, kind)
            obj = self._call("get", resource.get, name=name, namespace=namespace)
        except ResourceNotFoundError:
            return None
        except ApiException as e:
            if e.status == 404:
                return None
            raise classify_api_exception(e, f"get {kind} {namespace or ''}/{name}") from e
        return obj.to_dict()

    def list(
        self,
        api_version: str,
        kind: str,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> list[dict[str, Any]]:
        """List objects of a kind, optionally filtered by namespace and labels."""
        try:
            resource = self._resource(api_version, kind)
            result = self._call("list", resource.get, namespace=namespace, label_selector=label_selector)
        except ResourceNotFoundError:
            return []
        except ApiException as e:
            if e.status == 404:
                return []
            raise classify_api_exception(e, f"list {kind}") from e
        return result.to_dict().get("items", [])

    def create(self, body: dict[str, Any]) -> dict[str, Any]:
        """Create an object."""
        meta = body.get("metadata", {})
        action = f"create {body.get('kind')} {meta.get('namespace', '')}/{meta.get('name')}"
        try:
            resource = self._resource(body["apiVersion"], body["kind"])
            obj = self._call(
                "create", resource.create, body=body, namespace=meta.get("namespace"),
                field_manager=FIELD_MANAGER,
            )
        except ResourceNotFoundError as e:
            raise TransientClusterError(f"{action} failed: kind not served yet") from e
        except ApiException as e:
            raise classify_api_exception(e, action) from e
        return obj.to_dict()

    def patch(
        self,
        api_version: str,
        kind: str,
        name: str,
        namespace: str | None,
        patch: dict[str, Any],
    ) -> dict[str, Any]:
        """Apply a JSON merge patch to an object."""
        action = f"patch {kind} {namespace or ''}/{name}"
        try:
            resource = self._resource(api_version, kind)
            obj = self._call(
                "patch", resource.patch, body=patch, name=name, namespace=namespace,
                content_type=MERGE_PATCH, field_manager=FIELD_MANAGER,
            )
        except ResourceNotFoundError as e:
            raise TransientClusterError(f"{action} failed: kind not served") from e
        except ApiException as e:
            raise classify_api_exception(e, action) from e
        return obj.to_dict()

    def update(self, body: dict[str, Any]) -> dict[str, Any]:
        """Replace an object; resourceVersion in the body guards against lost updates."""
        meta = body.get("metadata", {})
        action = f"update {body.get('kind')} {meta.get('namespace', '')}/{meta.get('name')}"
        try:
            resource = self._resource(body["apiVersion"], body["kind"])
            obj = self._call(
                "update", resource.replace, body=body, namespace=meta.get("namespace"),
                field_manager=FIELD_MANAGER,
            )
        except ApiException as e:
            raise classify_api_exception(e, action) from e
        return obj.to_dict()

    def patch_status(self, body: dict[str, Any]) -> dict[str, Any] | None:
        """Merge-patch the status subresource. Returns None if the object is gone."""
        meta = body.get("metadata", {})
        action = f"patch status of {body.get('kind')} {meta.get('namespace', '')}/{meta.get('name')}"
        try:
            resource = self._resource(body["apiVersion"], body["kind"])
            target = resource.subresources.get("status", resource)
            obj = self._call(
                "patch_status", target.patch, body={"status": body.get("status", {})},
                name=meta.get("name"), namespace=meta.get("namespace"),
                content_type=MERGE_PATCH, field_manager=FIELD_MANAGER,
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise classify_api_exception(e, action) from e
        return obj.to_dict()

    def delete(self, api_version: str, kind: str, name: str, namespace: str | None = None) -> bool:
        """Delete an object in the background. Returns False if it was already gone."""
        action = f"delete {kind} {namespace or ''}/{name}"
        try:
            resource = self._resource(api_version, kind)
            self._call(
                "delete", resource.delete, name=name, namespace=namespace,
                body={"propagationPolicy": "Background"},
            )
        except ResourceNotFoundError:
            return False
        except ApiException as e:
            if e.status == 404:
                return False
            raise classify_api_exception(e, action) from e
        return True
