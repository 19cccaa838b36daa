"""Operator configuration read from the environment."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class VersionWindow:
    """Matches a transition from one version prefix to another."""

    current_prefix: str
    desired_prefix: str

    def matches(self, current_version: str, desired_version: str) -> bool:
        return (
            bool(current_version)
            and current_version.startswith(self.current_prefix)
            and desired_version.startswith(self.desired_prefix)
        )


@dataclass(frozen=True)
class CompatibilityRule:
    """Blocks an upgrade window while a component is enabled.

    Outside the block, the legacy subscription named by legacy_subscription
    must be absent.
    """

    window: VersionWindow
    component: str
    message: str
    legacy_subscription: str = ""
    legacy_namespace: str = ""


@dataclass(frozen=True)
class UpgradeRule:
    """One-time cleanup needed on self-managed hubs for an upgrade window."""

    window: VersionWindow
    # (apiVersion, kind, namespace, name) of objects that must be gone first
    remove: tuple[tuple[str, str, str, str], ...] = ()


DEFAULT_COMPATIBILITY_RULES = (
    CompatibilityRule(
        window=VersionWindow("2.4", "2.5"),
        component="cluster-backup",
        message="When upgrading from version 2.4 to 2.5, cluster backup must be disabled",
        legacy_subscription="cluster-backup-chart-sub",
        legacy_namespace="open-cluster-management-backup",
    ),
)

DEFAULT_UPGRADE_RULES = (
    UpgradeRule(
        window=VersionWindow("2.4", "2.5"),
        remove=(
            ("agent.open-cluster-management.io/v1", "KlusterletAddonConfig", "local-cluster", "local-cluster"),
        ),
    ),
)


def _parse_compatibility_rules(raw: str) -> tuple[CompatibilityRule, ...]:
    rules = []
    for item in json.loads(raw):
        rules.append(CompatibilityRule(
            window=VersionWindow(item["currentPrefix"], item["desiredPrefix"]),
            component=item["component"],
            message=item.get("message", f"{item['component']} must be disabled for this upgrade"),
            legacy_subscription=item.get("legacySubscription", ""),
            legacy_namespace=item.get("legacyNamespace", ""),
        ))
    return tuple(rules)


def _parse_upgrade_rules(raw: str) -> tuple[UpgradeRule, ...]:
    rules = []
    for item in json.loads(raw):
        remove = tuple(
            (obj["apiVersion"], obj["kind"], obj.get("namespace", ""), obj["name"])
            for obj in item.get("remove", [])
        )
        rules.append(UpgradeRule(
            window=VersionWindow(item["currentPrefix"], item["desiredPrefix"]),
            remove=remove,
        ))
    return tuple(rules)


def _env_bool(env: dict[str, str], key: str) -> bool:
    return env.get(key, "").lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class OperatorConfig:
    """Settings of one operator process.

    Environment Variables:
        CRDS_PATH: Directory of CRD manifests installed at step 9
        TEMPLATES_PATH: Directory holding multiclusterhub/base templates
        MANIFESTS_PATH: Directory of image manifest JSON files
        OPERATOR_VERSION: Manifest version of this operator
        UNIT_TEST: Test-harness mode, disables self-registration side effects
        RESYNC_PERIOD_SECONDS: Delay for voluntary requeues (default: 20)
        MAX_WORKERS: Concurrent reconciles (default: 4)
        METRICS_PORT: Port of the metrics and health server (default: 8080)
    """

    crds_path: str | None = None
    templates_path: str | None = None
    manifests_path: str = "/image-manifests"
    version: str = "0.0.0"
    unit_test: bool = False
    resync_period: float = 20.0
    max_workers: int = 4
    metrics_port: int = 8080
    min_retry_delay: float = 1.0
    max_retry_delay: float = 60.0
    subscription_operator_deployment: str = "multicluster-operators-hub-subscription"
    subscription_operator_namespace: str = ""
    plugin_min_platform_version: str = "4.10"
    compatibility_rules: tuple[CompatibilityRule, ...] = DEFAULT_COMPATIBILITY_RULES
    upgrade_rules: tuple[UpgradeRule, ...] = DEFAULT_UPGRADE_RULES
    operand_images: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> OperatorConfig:
        """Build the configuration from environment variables."""
        env = dict(os.environ if env is None else env)
        kwargs: dict[str, Any] = {
            "crds_path": env.get("CRDS_PATH"),
            "templates_path": env.get("TEMPLATES_PATH"),
            "manifests_path": env.get("MANIFESTS_PATH", "/image-manifests"),
            "version": env.get("OPERATOR_VERSION", "0.0.0"),
            "unit_test": _env_bool(env, "UNIT_TEST"),
            "resync_period": float(env.get("RESYNC_PERIOD_SECONDS", "20")),
            "max_workers": int(env.get("MAX_WORKERS", "4")),
            "metrics_port": int(env.get("METRICS_PORT", "8080")),
            "subscription_operator_deployment": env.get(
                "SUBSCRIPTION_OPERATOR_DEPLOYMENT", "multicluster-operators-hub-subscription"
            ),
            "subscription_operator_namespace": env.get("SUBSCRIPTION_OPERATOR_NAMESPACE", ""),
            "operand_images": {
                key[len("OPERAND_IMAGE_"):].lower(): value
                for key, value in env.items()
                if key.startswith("OPERAND_IMAGE_") and value
            },
        }
        if env.get("COMPATIBILITY_RULES"):
            kwargs["compatibility_rules"] = _parse_compatibility_rules(env["COMPATIBILITY_RULES"])
        if env.get("UPGRADE_RULES"):
            kwargs["upgrade_rules"] = _parse_upgrade_rules(env["UPGRADE_RULES"])
        return cls(**kwargs)
