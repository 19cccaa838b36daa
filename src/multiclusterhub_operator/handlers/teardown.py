"""Finalizer teardown pipeline run while the hub is being deleted."""

from __future__ import annotations

import logging
from typing import Any, Callable

from .. import metrics
from ..builders import engine, helmrepo
from ..builders import hub as hub_builders
from ..config import OperatorConfig
from ..constants import (
    APPSUB_API_VERSION,
    CONSOLE_OPERATOR_API_VERSION,
    CONSOLE_PLUGIN_NAME,
    CRD_API_VERSION,
    ENGINE_API_VERSION,
    KIND_CONSOLE,
    KIND_CRD,
    KIND_ENGINE,
    KIND_SUBSCRIPTION,
)
from ..utils.cache import CacheSpec
from ..utils.deploy import Deployer
from ..utils.errors import OperatorError, TeardownError
from ..utils.hub import namespace_of
from .status import plugin_supported

logger = logging.getLogger(__name__)

RBAC_API_VERSION = "rbac.authorization.k8s.io/v1"

Stage = Callable[[dict[str, Any], Deployer], None]


class TeardownPipeline:
    """Ordered, fail-fast cleanup stages.

    Each stage treats already-absent resources as success, so an aborted
    run can be resumed from the first stage on the next attempt.
    """

    def __init__(
        self,
        client: Any,
        config: OperatorConfig,
        cache: CacheSpec,
        stages: list[tuple[str, Stage]] | None = None,
    ) -> None:
        self.client = client
        self.config = config
        self.cache = cache
        self.stages = stages if stages is not None else self.default_stages()

    def default_stages(self) -> list[tuple[str, Stage]]:
        return [
            ("console-plugin", self.remove_console_plugin),
            ("hub-self-management", self.export_hub),
            ("app-subscriptions", self.remove_app_subscriptions),
            ("namespaces", self.remove_namespaces),
            ("foundation", self.remove_foundation),
            ("cluster-roles", self.remove_cluster_roles),
            ("cluster-role-bindings", self.remove_cluster_role_bindings),
            ("multicluster-engine", self.remove_engine),
            ("crds", self.remove_crds),
            ("pull-secret", self.remove_pull_secret),
            ("adopted-engine", self.release_adopted_engine),
        ]

    def run(self, hub: dict[str, Any], deployer: Deployer) -> None:
        """Run every stage in order.

        Raises:
            TeardownError: On the first stage failing with an operator error;
                later stages do not run
        """
        for name, stage in self.stages:
            try:
                stage(hub, deployer)
            except OperatorError as e:
                metrics.teardown_stage_total.labels(stage=name, result="error").inc()
                raise TeardownError(name, e) from e
            metrics.teardown_stage_total.labels(stage=name, result="success").inc()
            logger.debug(f"Teardown stage {name} complete")

    def remove_console_plugin(self, hub: dict[str, Any], deployer: Deployer) -> None:
        if not plugin_supported(self.cache.platform_version, self.config.plugin_min_platform_version):
            return
        console = self.client.get(CONSOLE_OPERATOR_API_VERSION, KIND_CONSOLE, "cluster")
        if console is None or CONSOLE_PLUGIN_NAME not in hub_builders.console_plugins(console):
            return
        deployer.ensure_present(hub_builders.build_console(console, enabled=False))

    def export_hub(self, hub: dict[str, Any], deployer: Deployer) -> None:
        deployer.ensure_absent(hub_builders.build_local_cluster())

    def remove_app_subscriptions(self, hub: dict[str, Any], deployer: Deployer) -> None:
        deployer.ensure_absent_labeled(APPSUB_API_VERSION, KIND_SUBSCRIPTION)

    def remove_namespaces(self, hub: dict[str, Any], deployer: Deployer) -> None:
        deployer.ensure_absent(hub_builders.build_backup_namespace())

    def remove_foundation(self, hub: dict[str, Any], deployer: Deployer) -> None:
        deployer.ensure_absent(helmrepo.build_channel(hub))
        deployer.ensure_absent(helmrepo.build_service(hub))
        deployer.ensure_absent(helmrepo.build_deployment(hub, self.cache.image_overrides))
        deployer.ensure_absent_labeled("v1", "ConfigMap", namespace_of(hub))

    def remove_cluster_roles(self, hub: dict[str, Any], deployer: Deployer) -> None:
        deployer.ensure_absent_labeled(RBAC_API_VERSION, "ClusterRole")

    def remove_cluster_role_bindings(self, hub: dict[str, Any], deployer: Deployer) -> None:
        deployer.ensure_absent_labeled(RBAC_API_VERSION, "ClusterRoleBinding")

    def remove_engine(self, hub: dict[str, Any], deployer: Deployer) -> None:
        # only engines created by the hub carry its labels
        deployer.ensure_absent_labeled(ENGINE_API_VERSION, KIND_ENGINE)

    def remove_crds(self, hub: dict[str, Any], deployer: Deployer) -> None:
        deployer.ensure_absent_labeled(CRD_API_VERSION, KIND_CRD)

    def remove_pull_secret(self, hub: dict[str, Any], deployer: Deployer) -> None:
        spec = hub.get("spec") or {}
        if not spec.get("separateCertificateManagement") or not spec.get("imagePullSecret"):
            return
        deployer.ensure_absent({
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {"name": spec["imagePullSecret"], "namespace": namespace_of(hub)},
        })

    def release_adopted_engine(self, hub: dict[str, Any], deployer: Deployer) -> None:
        for obj in self.client.list(ENGINE_API_VERSION, KIND_ENGINE):
            if engine.is_adopted_by(obj, hub):
                deployer.ensure_present(engine.released_engine(obj))
