"""Tests for resource body builders."""

from __future__ import annotations

import json

from multiclusterhub_operator.builders.engine import build_engine, is_adopted_by, released_engine
from multiclusterhub_operator.builders.helmrepo import build_channel, build_deployment, build_service
from multiclusterhub_operator.builders.hub import build_console, build_image_manifest, image_manifest_name
from multiclusterhub_operator.builders.subscription import (
    DEFAULT_OADP_SPEC,
    build_subscription,
    chart_values,
    oadp_subscription_spec,
)
from multiclusterhub_operator.constants import (
    ANNOTATION_ADOPTED_BY,
    ANNOTATION_OADP_SUBSCRIPTION,
    BACKUP_NAMESPACE,
    LABEL_INSTALLER_NAME,
)

from .conftest import HUB_NAMESPACE, make_hub


class TestHelmRepoBuilders:
    """Test cases for the chart repository builders."""

    def test_deployment_defaults(self):
        """Test replicas, image and pull settings on a plain hub."""
        hub = make_hub()

        deployment = build_deployment(hub, {"multiclusterhub_repo": "quay.io/stolostron/multiclusterhub-repo:2.5.0"})

        assert deployment["metadata"]["namespace"] == HUB_NAMESPACE
        assert deployment["spec"]["replicas"] == 2
        container = deployment["spec"]["template"]["spec"]["containers"][0]
        assert container["image"] == "quay.io/stolostron/multiclusterhub-repo:2.5.0"
        assert container["imagePullPolicy"] == "IfNotPresent"
        assert "imagePullSecrets" not in deployment["spec"]["template"]["spec"]

    def test_deployment_honours_spec(self):
        """Test that availability, pull secret and node selector are applied."""
        hub = make_hub(
            availabilityConfig="Basic",
            imagePullSecret="pull",
            nodeSelector={"node-role.kubernetes.io/infra": ""},
        )

        pod_spec = build_deployment(hub, {})["spec"]["template"]["spec"]

        assert build_deployment(hub, {})["spec"]["replicas"] == 1
        assert pod_spec["imagePullSecrets"] == [{"name": "pull"}]
        assert pod_spec["nodeSelector"] == {"node-role.kubernetes.io/infra": ""}

    def test_service_and_channel(self):
        """Test that the channel points at the service."""
        hub = make_hub()

        service = build_service(hub)
        channel = build_channel(hub)

        port = service["spec"]["ports"][0]["port"]
        assert channel["spec"]["pathname"] == (
            f"http://{service['metadata']['name']}.{HUB_NAMESPACE}.svc.cluster.local:{port}/charts"
        )


class TestSubscriptionBuilder:
    """Test cases for component subscriptions."""

    def test_console_subscription(self):
        """Test name, channel and chart values of a component subscription."""
        hub = make_hub()

        sub = build_subscription(hub, "console", {"console": "img/console:1", "grc_ui": "img/grc:1"}, "apps.x.com")

        assert sub["metadata"] == {"name": "console-chart-sub", "namespace": HUB_NAMESPACE}
        assert sub["spec"]["channel"] == f"{HUB_NAMESPACE}/charts-v1"
        values = sub["spec"]["packageOverrides"][0]["packageOverrides"][0]["value"]
        assert values["global"]["imageOverrides"] == {"console": "img/console:1"}
        assert values["global"]["ingressDomain"] == "apps.x.com"

    def test_backup_lives_in_its_namespace(self):
        sub = build_subscription(make_hub(), "cluster-backup", {})

        assert sub["metadata"]["namespace"] == BACKUP_NAMESPACE
        assert sub["spec"]["channel"] == f"{HUB_NAMESPACE}/charts-v1"

    def test_values_without_ingress_domain(self):
        """Test that charts without routes get no ingress domain."""
        values = chart_values(make_hub(), "grc", {}, "apps.x.com")

        assert "ingressDomain" not in values["global"]
        assert values["hubconfig"]["replicaCount"] == 2

    def test_management_ingress_ciphers(self):
        hub = make_hub(ingress={"sslCiphers": ["ECDHE-RSA-AES128-GCM-SHA256"]})

        values = chart_values(hub, "management-ingress", {})

        assert values["ingress"] == {"sslCiphers": ["ECDHE-RSA-AES128-GCM-SHA256"]}

    def test_oadp_annotation(self):
        """Test that the OADP override annotation is merged over the defaults."""
        hub = make_hub(annotations={ANNOTATION_OADP_SUBSCRIPTION: json.dumps({"channel": "stable-1.1"})})

        spec = oadp_subscription_spec(hub)

        assert spec["channel"] == "stable-1.1"
        assert spec["name"] == DEFAULT_OADP_SPEC["name"]

    def test_oadp_annotation_invalid(self):
        """Test that a malformed annotation falls back to the defaults."""
        for raw in ("{broken", "[1, 2]"):
            hub = make_hub(annotations={ANNOTATION_OADP_SUBSCRIPTION: raw})
            assert oadp_subscription_spec(hub) == DEFAULT_OADP_SPEC


class TestEngineBuilder:
    """Test cases for the MultiClusterEngine builder."""

    def test_created_engine_is_labeled(self):
        """Test that an engine created by the hub carries identity labels."""
        hub = make_hub(components=[{"name": "cluster-proxy-addon", "enabled": True}])

        engine = build_engine(hub)

        assert engine["metadata"]["labels"][LABEL_INSTALLER_NAME] == "multiclusterhub"
        assert "annotations" not in engine["metadata"]
        assert engine["spec"]["overrides"]["components"] == [{"name": "cluster-proxy-addon", "enabled": True}]

    def test_adopted_engine_is_annotated(self):
        """Test that an adopted engine is marked without labels."""
        hub = make_hub()

        engine = build_engine(hub, name="existing", adopted=True)

        assert engine["metadata"]["name"] == "existing"
        assert "labels" not in engine["metadata"]
        assert is_adopted_by(engine, hub)
        assert not is_adopted_by(build_engine(hub), hub)

    def test_released_engine(self):
        """Test that releasing nulls the adoption marker."""
        engine = build_engine(make_hub(), name="existing", adopted=True)

        assert released_engine(engine)["metadata"] == {
            "name": "existing",
            "annotations": {ANNOTATION_ADOPTED_BY: None},
        }


class TestHubBuilders:
    """Test cases for hub-level resources."""

    def test_console_plugin_added_once(self):
        """Test that the plugin is appended after other plugins and not duplicated."""
        live = {"spec": {"plugins": ["acm", "monitoring"]}}

        assert build_console(live, True)["spec"]["plugins"] == ["monitoring", "acm"]
        assert build_console(live, False)["spec"]["plugins"] == ["monitoring"]
        assert build_console(None, True)["spec"]["plugins"] == ["acm"]

    def test_image_manifest(self):
        """Test the published image manifest config map."""
        manifest = build_image_manifest(make_hub(), "2.5.0", {"search_api": "b", "console": "a"})

        assert manifest["metadata"]["name"] == image_manifest_name("2.5.0") == "mch-image-manifest-2.5.0"
        assert list(manifest["data"]) == ["console", "search_api"]
        assert manifest["metadata"]["labels"]["ocm-release-version"] == "2.5.0"
