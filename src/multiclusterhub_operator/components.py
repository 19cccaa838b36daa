"""Table of optional hub components and the resources each one implies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from .builders import helmrepo, hub as hub_builders, subscription
from .constants import (
    COMPONENT_CLUSTER_BACKUP,
    COMPONENT_CLUSTER_LIFECYCLE,
    COMPONENT_CLUSTER_PROXY_ADDON,
    COMPONENT_CONSOLE,
    COMPONENT_GRC,
    COMPONENT_INSIGHTS,
    COMPONENT_MANAGEMENT_INGRESS,
    COMPONENT_REPO,
    COMPONENT_SEARCH,
    COMPONENT_VOLSYNC,
)
from .utils.cache import CacheSpec

BodyFactory = Callable[[dict[str, Any], CacheSpec], dict[str, Any]]


@dataclass(frozen=True)
class Component:
    """One toggleable component.

    Bodies are ensured present in order when the component is enabled and
    ensured absent in reverse order when it is disabled.
    """

    name: str
    bodies: tuple[BodyFactory, ...]

    def render(self, hub: dict[str, Any], cache: CacheSpec) -> list[dict[str, Any]]:
        return [factory(hub, cache) for factory in self.bodies]


def _appsub(component: str) -> BodyFactory:
    def factory(hub: dict[str, Any], cache: CacheSpec) -> dict[str, Any]:
        return subscription.build_subscription(hub, component, cache.image_overrides, cache.ingress_domain)

    return factory


COMPONENTS: tuple[Component, ...] = (
    Component(
        COMPONENT_REPO,
        (
            lambda hub, cache: helmrepo.build_deployment(hub, cache.image_overrides),
            lambda hub, cache: helmrepo.build_service(hub),
            lambda hub, cache: helmrepo.build_channel(hub),
        ),
    ),
    Component(COMPONENT_MANAGEMENT_INGRESS, (_appsub(COMPONENT_MANAGEMENT_INGRESS),)),
    Component(COMPONENT_CONSOLE, (_appsub(COMPONENT_CONSOLE),)),
    Component(COMPONENT_INSIGHTS, (_appsub(COMPONENT_INSIGHTS),)),
    Component(COMPONENT_GRC, (_appsub(COMPONENT_GRC),)),
    Component(COMPONENT_CLUSTER_LIFECYCLE, (_appsub(COMPONENT_CLUSTER_LIFECYCLE),)),
    Component(COMPONENT_VOLSYNC, (_appsub(COMPONENT_VOLSYNC),)),
    Component(COMPONENT_SEARCH, (_appsub(COMPONENT_SEARCH),)),
    Component(
        COMPONENT_CLUSTER_BACKUP,
        (
            lambda hub, cache: hub_builders.build_backup_namespace(),
            _appsub(COMPONENT_CLUSTER_BACKUP),
        ),
    ),
    Component(COMPONENT_CLUSTER_PROXY_ADDON, (_appsub(COMPONENT_CLUSTER_PROXY_ADDON),)),
)


def get_component(name: str) -> Component | None:
    for component in COMPONENTS:
        if component.name == name:
            return component
    return None
