"""Utilities for emitting Kubernetes events on the hub."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_BLOCKED,
    EVENT_REASON_COMPONENT_CREATED,
    EVENT_REASON_COMPONENT_DELETED,
    EVENT_REASON_COMPONENT_UPDATED,
    EVENT_REASON_FINALIZE_FAILED,
    EVENT_REASON_FINALIZED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
)


def emit_event(
    hub: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        hub: The MultiClusterHub body the event is attached to
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        hub,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(hub: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(hub, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(hub: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(hub, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_component_created(hub: dict[str, Any], kind: str, name: str) -> None:
    emit_event(hub, EVENT_REASON_COMPONENT_CREATED, f"Created {kind} {name}")


def emit_component_updated(hub: dict[str, Any], kind: str, name: str) -> None:
    emit_event(hub, EVENT_REASON_COMPONENT_UPDATED, f"Updated {kind} {name}")


def emit_component_deleted(hub: dict[str, Any], kind: str, name: str) -> None:
    emit_event(hub, EVENT_REASON_COMPONENT_DELETED, f"Deleted {kind} {name}")


def emit_blocked(hub: dict[str, Any], message: str) -> None:
    emit_event(hub, EVENT_REASON_BLOCKED, message, type_="Warning")


def emit_finalize_failed(hub: dict[str, Any], message: str) -> None:
    emit_event(hub, EVENT_REASON_FINALIZE_FAILED, message, type_="Warning")


def emit_finalized(hub: dict[str, Any]) -> None:
    emit_event(hub, EVENT_REASON_FINALIZED, "All owned resources cleaned up")
