"""MultiClusterHub reconciler: the ordered convergence pass and the deletion branch."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

from ..builders import engine as engine_builder
from ..builders import hub as hub_builders
from ..builders.subscription import legacy_subscription
from ..components import COMPONENTS
from ..config import OperatorConfig
from ..constants import (
    API_GROUP_VERSION,
    APPSUB_API_VERSION,
    CONFIG_API_VERSION,
    CONSOLE_OPERATOR_API_VERSION,
    COND_BLOCKED,
    COMPONENT_CONSOLE,
    ENGINE_API_VERSION,
    ENGINE_DEFAULT_NAME,
    HELM_RELEASE_API_VERSION,
    KIND_CHANNEL,
    KIND_CLUSTER_VERSION,
    KIND_CONSOLE,
    KIND_ENGINE,
    KIND_HELM_RELEASE,
    KIND_HUB,
    KIND_SUBSCRIPTION,
    REASON_ALL_OLD_COMPONENTS_REMOVED,
    REASON_PULL_SECRET,
    TEMPLATES_KIND,
)
from ..result import ReconcileResult
from ..tracing import trace_span
from ..utils.cache import CacheSpec
from ..utils.conditions import (
    hub_conditions,
    remove_condition,
    set_blocked_condition,
    set_progressing_condition,
    set_terminating_condition,
    update_paused_condition,
)
from ..utils.defaults import apply_defaults
from ..utils.deploy import Deployer
from ..utils.errors import ConfigurationError, OperatorError, TeardownError
from ..utils.events import emit_blocked, emit_finalize_failed, emit_finalized
from ..utils.hub import (
    has_finalizer,
    image_overrides_configmap,
    image_repository,
    installer_labels,
    installer_selector,
    is_deleting,
    is_enabled,
    is_labeled_for,
    is_owned_by,
    is_paused,
    name_of,
    namespace_of,
)
from ..utils.manifests import load_crds, load_templates
from ..utils.overrides import configmap_overrides, layer_overrides, manifest_overrides
from .base import BaseHandler
from .status import StatusSync, deployment_available, plugin_supported
from .teardown import TeardownPipeline

REASON_INGRESS_DOMAIN = "IngressDomainMissing"
REASON_OVERRIDES_CM_MISSING = "ImageOverridesConfigmapMissing"

# kinds swept for leftovers once the hub is healthy
SWEPT_KINDS = (
    (APPSUB_API_VERSION, KIND_SUBSCRIPTION),
    (APPSUB_API_VERSION, KIND_CHANNEL),
    ("apps/v1", "Deployment"),
    ("v1", "Service"),
    ("v1", "ConfigMap"),
)


@dataclass
class _StatusOutcome:
    result: ReconcileResult = field(default_factory=ReconcileResult.proceed)


class HubReconciler(BaseHandler):
    """Drives the live cluster toward one MultiClusterHub's spec.

    One instance serves one controller. Its CacheSpec is shared by every
    pass; the work queue guarantees passes for the same hub never overlap.
    """

    def __init__(
        self,
        client: Any,
        config: OperatorConfig,
        cache: CacheSpec | None = None,
        teardown: TeardownPipeline | None = None,
    ) -> None:
        super().__init__(KIND_HUB, client)
        self.config = config
        self.cache = cache or CacheSpec()
        self.teardown = teardown or TeardownPipeline(client, config, self.cache)
        self.status = StatusSync(client, config, self.cache)

    def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        """Run one pass for the hub identified by namespace/name.

        Returns:
            The pass outcome; errors are raised

        Raises:
            OperatorError: For transient and permanent failures of the pass
        """
        hub = self.client.get(API_GROUP_VERSION, KIND_HUB, name, namespace)
        if hub is None:
            self.logger.info(f"MultiClusterHub {namespace}/{name} not found, ignoring since object must be deleted")
            return ReconcileResult.proceed()

        with trace_span("reconcile", kind=KIND_HUB, attributes={"hub.name": name, "hub.namespace": namespace}):
            return self.reconcile_with_metrics(hub, lambda: self._reconcile(hub))

    def _reconcile(self, hub: dict[str, Any]) -> ReconcileResult:
        with self.deferred_status_sync(hub) as synced:
            if is_deleting(hub):
                result = self._finalize(hub)
            else:
                result = self._converge(hub)
        return result or synced.result

    @contextmanager
    def deferred_status_sync(self, hub: dict[str, Any]) -> Iterator[_StatusOutcome]:
        """Sync status on every exit path of a pass.

        Operator errors of the pass win over a status sync failure.
        Unexpected exceptions propagate without a status commit.
        """
        previous = StatusSync.snapshot(hub)
        outcome = _StatusOutcome()
        try:
            yield outcome
        except OperatorError:
            try:
                self.status.sync(hub, previous)
            except OperatorError as sync_error:
                self.log_error(hub, "Failed to sync status", error=sync_error, reason="StatusSyncFailed")
            raise
        outcome.result = self.status.sync(hub, previous)

    def _finalize(self, hub: dict[str, Any]) -> ReconcileResult:
        if not has_finalizer(hub):
            return ReconcileResult.proceed()

        set_terminating_condition(hub)
        self.cache.platform_version = self._platform_version()
        deployer = Deployer(self.client, hub)
        with trace_span("teardown", kind=KIND_HUB):
            try:
                self.teardown.run(hub, deployer)
            except TeardownError as e:
                self.log_error(hub, "Failed to finalize MultiClusterHub", error=e, reason="FinalizeFailed", stage=e.stage)
                emit_finalize_failed(hub, str(e))
                return ReconcileResult.after(self.config.resync_period, "teardown-failed")

        self.remove_finalizer(hub)
        emit_finalized(hub)
        self.log_info(hub, "Successfully finalized MultiClusterHub", reason="Finalized")
        return ReconcileResult.proceed()

    def _converge(self, hub: dict[str, Any]) -> ReconcileResult:
        self.ensure_finalizer(hub)
        deployer = Deployer(self.client, hub)
        steps = [
            ("defaults", self.ensure_defaults),
            ("image-overrides", self.resolve_image_overrides),
            ("image-manifest", self.ensure_image_manifest),
            ("upgrade-migration", self.run_upgrade_migration),
            ("adopt-helm-deployments", self.adopt_helm_deployments),
            ("pause", self.check_paused),
            ("compatibility", self.check_compatibility),
            ("subscription-operator", self.check_subscription_operator),
            ("crds", self.install_crds),
            ("pull-secret", self.check_pull_secret),
            ("components", self.ensure_components),
            ("multicluster-engine", self.ensure_engine),
            ("ingress-domain", self.ensure_ingress_domain),
            ("templates", self.deploy_templates),
            ("self-management", self.ensure_self_management),
            ("finalize-install", self.finalize_install),
        ]
        try:
            for step, fn in steps:
                with trace_span(f"step.{step}", kind=KIND_HUB):
                    result = fn(hub, deployer)
                if result:
                    self.logger.debug(f"Step {step} ended the pass: {result.action}")
                    return result
        except ConfigurationError as e:
            set_progressing_condition(hub, False, e.reason, str(e))
            raise
        return ReconcileResult.proceed()

    def ensure_defaults(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        """Default and migrate the spec, and refresh the platform version."""
        self.cache.platform_version = self._platform_version()

        if not apply_defaults(hub):
            return ReconcileResult.proceed()

        self.log_info(hub, "MultiClusterHub is invalid, updating with proper defaults", reason="Defaulted")
        self.client.update(hub)
        return ReconcileResult.changed("defaulted")

    def _platform_version(self) -> str:
        version = self.client.get(CONFIG_API_VERSION, KIND_CLUSTER_VERSION, "version")
        if version is None:
            return ""
        status = version.get("status") or {}
        desired = (status.get("desired") or {}).get("version")
        if desired:
            return desired
        history = status.get("history") or []
        return history[0].get("version", "") if history else ""

    def resolve_image_overrides(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        configmap_layer = None
        cm_name = image_overrides_configmap(hub)
        if cm_name:
            configmap = self.client.get("v1", "ConfigMap", cm_name, namespace_of(hub))
            if configmap is None:
                raise ConfigurationError(
                    f"image overrides config map {cm_name} not found", REASON_OVERRIDES_CM_MISSING
                )
            configmap_layer = configmap_overrides(configmap)

        overrides = layer_overrides(
            self.config.operand_images,
            lambda: manifest_overrides(self.config.manifests_path, self.config.version),
            image_repository(hub),
            configmap_layer,
        )
        self.cache.refresh_overrides(overrides, self.config.version, image_repository(hub), cm_name)
        return ReconcileResult.proceed()

    def ensure_image_manifest(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        return deployer.ensure_present(
            hub_builders.build_image_manifest(hub, self.cache.manifest_version, self.cache.image_overrides)
        )

    def run_upgrade_migration(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        """Remove objects that block a self-managed hub's upgrade across a version window."""
        if (hub.get("spec") or {}).get("disableHubSelfManagement"):
            return ReconcileResult.proceed()
        current = (hub.get("status") or {}).get("currentVersion", "")
        for rule in self.config.upgrade_rules:
            if not rule.window.matches(current, self.config.version):
                continue
            for api_version, kind, namespace, name in rule.remove:
                result = deployer.ensure_absent({
                    "apiVersion": api_version,
                    "kind": kind,
                    "metadata": {"name": name, "namespace": namespace},
                })
                if result:
                    return result
        return ReconcileResult.proceed()

    def adopt_helm_deployments(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        """Label deployments created by helm releases of the hub's subscriptions."""
        namespace = namespace_of(hub)
        subscriptions = {
            name_of(sub)
            for sub in self.client.list(APPSUB_API_VERSION, KIND_SUBSCRIPTION, namespace, installer_selector(hub))
        }
        if not subscriptions:
            return ReconcileResult.proceed()

        releases = {
            name_of(release)
            for release in self.client.list(HELM_RELEASE_API_VERSION, KIND_HELM_RELEASE, namespace)
            if _owner_names(release, KIND_SUBSCRIPTION) & subscriptions
        }
        for deployment in self.client.list("apps/v1", "Deployment", namespace):
            if not _owner_names(deployment, KIND_HELM_RELEASE) & releases or is_labeled_for(deployment, hub):
                continue
            result = deployer.ensure_present({
                "apiVersion": "apps/v1",
                "kind": "Deployment",
                "metadata": {"name": name_of(deployment), "namespace": namespace, "labels": installer_labels(hub)},
            })
            if result:
                return result
        return ReconcileResult.proceed()

    def check_paused(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        paused = is_paused(hub)
        update_paused_condition(hub, paused)
        if paused:
            self.log_info(hub, "MultiClusterHub reconciliation is paused. Nothing more to do.", reason="Paused")
            return ReconcileResult.halt("paused")
        return ReconcileResult.proceed()

    def check_compatibility(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        """Block disallowed upgrade combinations; otherwise clear Blocked and remove legacy objects."""
        current = (hub.get("status") or {}).get("currentVersion", "")
        for rule in self.config.compatibility_rules:
            if rule.window.matches(current, self.config.version) and is_enabled(hub, rule.component):
                set_blocked_condition(hub, rule.message)
                emit_blocked(hub, rule.message)
                self.log_warning(hub, rule.message, reason="Blocked")
                return ReconcileResult.halt("blocked")

        for rule in self.config.compatibility_rules:
            if not rule.legacy_subscription:
                continue
            result = deployer.ensure_absent(legacy_subscription(rule.legacy_subscription, rule.legacy_namespace))
            if result:
                return result
        remove_condition(hub_conditions(hub), COND_BLOCKED)
        return ReconcileResult.proceed()

    def check_subscription_operator(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        namespace = self.config.subscription_operator_namespace or namespace_of(hub)
        name = self.config.subscription_operator_deployment
        deployment = self.client.get("apps/v1", "Deployment", name, namespace)
        if deployment is None or not deployment_available(deployment):
            self.log_info(hub, f"Waiting for subscription operator {namespace}/{name}", reason="Waiting")
            return ReconcileResult.after(self.config.resync_period, "waiting-for-subscription-operator")
        return ReconcileResult.proceed()

    def install_crds(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        # creations do not end the pass; every CRD is needed by later steps
        for crd in load_crds(self.config.crds_path):
            deployer.ensure_present(crd)
        return ReconcileResult.proceed()

    def check_pull_secret(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        name = (hub.get("spec") or {}).get("imagePullSecret")
        if not name:
            return ReconcileResult.proceed()
        if self.client.get("v1", "Secret", name, namespace_of(hub)) is None:
            raise ConfigurationError(
                f"image pull secret {name} not found in namespace {namespace_of(hub)}", REASON_PULL_SECRET
            )
        return ReconcileResult.proceed()

    def ensure_components(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        """Converge every component of the table; the first structural change ends the pass."""
        # charts exposing routes need the domain before their bodies are built
        self.ensure_ingress_domain(hub, deployer)
        for component in COMPONENTS:
            bodies = component.render(hub, self.cache)
            if is_enabled(hub, component.name):
                for body in bodies:
                    result = deployer.ensure_present(body)
                    if result:
                        return result
            else:
                for body in reversed(bodies):
                    result = deployer.ensure_absent(body)
                    if result:
                        return result
        return ReconcileResult.proceed()

    def ensure_engine(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        """Ensure the engine exists, adopting a pre-existing one by name."""
        engines = self.client.list(ENGINE_API_VERSION, KIND_ENGINE)
        owned = [e for e in engines if is_labeled_for(e, hub) or engine_builder.is_adopted_by(e, hub)]
        if owned:
            target = owned[0]
            body = engine_builder.build_engine(hub, name_of(target), adopted=not is_labeled_for(target, hub))
        elif engines:
            self.log_info(hub, f"Adopting existing MultiClusterEngine {name_of(engines[0])}", reason="Adopted")
            body = engine_builder.build_engine(hub, name_of(engines[0]), adopted=True)
        else:
            body = engine_builder.build_engine(hub, ENGINE_DEFAULT_NAME)
        return deployer.ensure_present(body)

    def ensure_ingress_domain(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        """Discover the ingress domain once per process."""
        if self.cache.ingress_domain or self.config.unit_test:
            return ReconcileResult.proceed()
        ingress = self.client.get(CONFIG_API_VERSION, "Ingress", "cluster")
        domain = ((ingress or {}).get("spec") or {}).get("domain", "")
        if not domain:
            raise ConfigurationError("unable to discover the cluster ingress domain", REASON_INGRESS_DOMAIN)
        self.cache.ingress_domain = domain
        return ReconcileResult.proceed()

    def deploy_templates(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        for resource in load_templates(self.config.templates_path, TEMPLATES_KIND):
            deployer.ensure_present(resource)
        return ReconcileResult.proceed()

    def ensure_self_management(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        """Import the hub as local-cluster, or export it when self-management is disabled."""
        if self.config.unit_test:
            return ReconcileResult.proceed()
        if (hub.get("spec") or {}).get("disableHubSelfManagement"):
            return deployer.ensure_absent(hub_builders.build_local_cluster())
        return deployer.ensure_present(hub_builders.build_local_cluster())

    def finalize_install(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        """Register the console plugin and sweep leftovers once every component is healthy."""
        if not StatusSync.all_healthy(self.status.component_health(hub)):
            return ReconcileResult.proceed()

        if is_enabled(hub, COMPONENT_CONSOLE) and plugin_supported(
            self.cache.platform_version, self.config.plugin_min_platform_version
        ):
            console = self.client.get(CONSOLE_OPERATOR_API_VERSION, KIND_CONSOLE, "cluster")
            if console is not None:
                result = deployer.ensure_present(hub_builders.build_console(console, enabled=True))
                if result:
                    return result

        return self.sweep_removals(hub, deployer)

    def sweep_removals(self, hub: dict[str, Any], deployer: Deployer) -> ReconcileResult:
        """Delete hub children that the current spec no longer implies."""
        removed = 0
        for api_version, kind in SWEPT_KINDS:
            for obj in self.client.list(api_version, kind, label_selector=installer_selector(hub)):
                key = (api_version, kind, namespace_of(obj), name_of(obj))
                if key in deployer.ensured or _owned_by_other(obj, hub):
                    continue
                result = deployer.ensure_absent({
                    "apiVersion": api_version,
                    "kind": kind,
                    "metadata": {"name": name_of(obj), "namespace": namespace_of(obj)},
                })
                if result:
                    removed += 1
        if removed:
            set_progressing_condition(
                hub, True, REASON_ALL_OLD_COMPONENTS_REMOVED, f"removed {removed} resources no longer needed"
            )
            return ReconcileResult.changed("swept")
        return ReconcileResult.proceed()


def _owner_names(obj: dict[str, Any], kind: str) -> set[str]:
    refs = (obj.get("metadata") or {}).get("ownerReferences") or []
    return {ref.get("name", "") for ref in refs if ref.get("kind") == kind}


def _owned_by_other(obj: dict[str, Any], hub: dict[str, Any]) -> bool:
    refs = (obj.get("metadata") or {}).get("ownerReferences") or []
    return bool(refs) and not is_owned_by(obj, hub)
