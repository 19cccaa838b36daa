"""Tests for the ensure-present and ensure-absent primitives."""

from __future__ import annotations

import pytest

from multiclusterhub_operator.constants import (
    COND_PROGRESSING,
    LABEL_INSTALLER_NAME,
    LABEL_INSTALLER_NAMESPACE,
    REASON_DEPLOY_FAILED,
    REASON_NEW_COMPONENT,
    REASON_OLD_COMPONENT_NOT_REMOVED,
    REASON_OLD_COMPONENT_REMOVED,
    REASON_UPDATED_COMPONENT,
)
from multiclusterhub_operator.utils.conditions import get_condition
from multiclusterhub_operator.utils.deploy import Deployer
from multiclusterhub_operator.utils.errors import PermanentClusterError, TransientClusterError

from .conftest import HUB_NAMESPACE, make_hub


def configmap(name="settings", namespace=HUB_NAMESPACE, **data):
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": name, "namespace": namespace},
        "data": data,
    }


def progressing(hub):
    return get_condition(hub["status"]["conditions"], COND_PROGRESSING)


class TestEnsurePresent:
    """Test cases for Deployer.ensure_present."""

    def test_creates_missing_object(self, cluster):
        """Test that a missing object is created with identity labels and owner."""
        hub = make_hub()
        deployer = Deployer(cluster, hub)

        result = deployer.ensure_present(configmap(key="value"))

        assert result.requeue
        assert result.action == "created"
        stored = cluster.stored("v1", "ConfigMap", "settings", HUB_NAMESPACE)
        assert stored["metadata"]["labels"] == {
            LABEL_INSTALLER_NAME: "multiclusterhub",
            LABEL_INSTALLER_NAMESPACE: HUB_NAMESPACE,
        }
        assert stored["metadata"]["ownerReferences"][0]["uid"] == "hub-uid"
        assert progressing(hub)["reason"] == REASON_NEW_COMPONENT
        assert ("v1", "ConfigMap", HUB_NAMESPACE, "settings") in deployer.ensured

    def test_other_namespace_gets_no_owner(self, cluster):
        """Test that objects outside the hub namespace carry labels only."""
        deployer = Deployer(cluster, make_hub())

        deployer.ensure_present(configmap(namespace="elsewhere"))

        stored = cluster.stored("v1", "ConfigMap", "settings", "elsewhere")
        assert "ownerReferences" not in stored["metadata"]
        assert stored["metadata"]["labels"][LABEL_INSTALLER_NAME] == "multiclusterhub"

    def test_desired_is_not_modified(self, cluster):
        """Test that the builder's body is left untouched."""
        desired = configmap(key="value")
        Deployer(cluster, make_hub()).ensure_present(desired)

        assert "labels" not in desired["metadata"]

    def test_covered_object_is_left_alone(self, cluster):
        """Test that an object already matching is not written."""
        hub = make_hub()
        deployer = Deployer(cluster, hub)
        deployer.ensure_present(configmap(key="value"))
        cluster.mutations.clear()

        result = deployer.ensure_present(configmap(key="value"))

        assert not result
        assert cluster.mutations == []

    def test_patches_drift(self, cluster):
        """Test that a differing allow-listed field is patched."""
        hub = make_hub()
        deployer = Deployer(cluster, hub)
        deployer.ensure_present(configmap(key="value"))

        result = deployer.ensure_present(configmap(key="other"))

        assert result.action == "updated"
        assert cluster.stored("v1", "ConfigMap", "settings", HUB_NAMESPACE)["data"] == {"key": "other"}
        assert progressing(hub)["reason"] == REASON_UPDATED_COMPONENT

    def test_permanent_error_sets_condition(self, cluster):
        """Test that a permanent failure is recorded on the hub and re-raised."""
        hub = make_hub()
        cluster.fail_on("create", "ConfigMap", PermanentClusterError("invalid", status=422))

        with pytest.raises(PermanentClusterError):
            Deployer(cluster, hub).ensure_present(configmap())

        condition = progressing(hub)
        assert condition["status"] == "False"
        assert condition["reason"] == REASON_DEPLOY_FAILED

    def test_transient_error_is_raised_untouched(self, cluster):
        """Test that a transient failure does not touch the hub's conditions."""
        hub = make_hub()
        cluster.fail_on("get", "ConfigMap", TransientClusterError("throttled", status=429))

        with pytest.raises(TransientClusterError):
            Deployer(cluster, hub).ensure_present(configmap())

        assert "status" not in hub


class TestEnsureAbsent:
    """Test cases for Deployer.ensure_absent."""

    def test_deletes_existing(self, cluster):
        """Test that an existing object is deleted."""
        hub = make_hub()
        cluster.add(configmap())

        result = Deployer(cluster, hub).ensure_absent(configmap())

        assert result.action == "deleted"
        assert cluster.stored("v1", "ConfigMap", "settings", HUB_NAMESPACE) is None
        assert progressing(hub)["reason"] == REASON_OLD_COMPONENT_REMOVED

    def test_absent_is_noop(self, cluster):
        """Test that a missing object is success without a write."""
        result = Deployer(cluster, make_hub()).ensure_absent(configmap())

        assert not result
        assert cluster.mutations == []

    def test_terminating_is_noop(self, cluster):
        """Test that an object already being deleted is not deleted again."""
        obj = configmap()
        obj["metadata"]["deletionTimestamp"] = "2024-01-01T00:00:00Z"
        cluster.add(obj)

        result = Deployer(cluster, make_hub()).ensure_absent(configmap())

        assert not result
        assert cluster.mutations == []

    def test_permanent_error_sets_condition(self, cluster):
        """Test that a failed delete is recorded on the hub."""
        hub = make_hub()
        cluster.add(configmap())
        cluster.fail_on("delete", "ConfigMap", PermanentClusterError("forbidden", status=403))

        with pytest.raises(PermanentClusterError):
            Deployer(cluster, hub).ensure_absent(configmap())

        assert progressing(hub)["reason"] == REASON_OLD_COMPONENT_NOT_REMOVED

    def test_ensure_absent_labeled(self, cluster):
        """Test that only objects carrying the hub's labels are deleted."""
        hub = make_hub()
        deployer = Deployer(cluster, hub)
        deployer.ensure_present(configmap(name="ours"))
        cluster.add(configmap(name="theirs"))

        deleted = deployer.ensure_absent_labeled("v1", "ConfigMap", HUB_NAMESPACE)

        assert deleted == 1
        assert cluster.stored("v1", "ConfigMap", "ours", HUB_NAMESPACE) is None
        assert cluster.stored("v1", "ConfigMap", "theirs", HUB_NAMESPACE) is not None
