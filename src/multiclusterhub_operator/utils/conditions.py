"""Utilities for managing the hub's status conditions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..constants import (
    COND_BLOCKED,
    COND_PROGRESSING,
    COND_TERMINATING,
    REASON_DELETE_TIMESTAMP,
    REASON_PAUSED,
    REASON_RESOURCE_BLOCKED,
    REASON_RESUMED,
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_condition(conditions: list[dict[str, Any]], condition_type: str) -> dict[str, Any] | None:
    """Return the condition of the given type, or None."""
    for cond in conditions:
        if cond.get("type") == condition_type:
            return cond
    return None


def set_condition(
    conditions: list[dict[str, Any]],
    condition_type: str,
    status: str,
    reason: str,
    message: str,
) -> list[dict[str, Any]]:
    """Set a condition in place, preserving ledger order.

    A new type is appended with both timestamps set to now. For an existing
    type, lastTransitionTime moves only when the status changes and
    lastUpdateTime moves when status, reason or message changes. Identical
    calls leave the entry untouched.

    Args:
        conditions: Condition ledger (mutated in place)
        condition_type: Type of condition
        status: Status of condition ("True", "False", "Unknown")
        reason: Short machine-readable reason
        message: Human-readable message

    Returns:
        The same ledger list
    """
    existing = get_condition(conditions, condition_type)
    if existing is None:
        now = _now()
        conditions.append({
            "type": condition_type,
            "status": status,
            "reason": reason,
            "message": message,
            "lastTransitionTime": now,
            "lastUpdateTime": now,
        })
        return conditions

    status_changed = existing.get("status") != status
    if not status_changed and existing.get("reason") == reason and existing.get("message") == message:
        return conditions

    now = _now()
    if status_changed:
        existing["lastTransitionTime"] = now
    existing["lastUpdateTime"] = now
    existing["status"] = status
    existing["reason"] = reason
    existing["message"] = message
    return conditions


def remove_condition(conditions: list[dict[str, Any]], condition_type: str) -> list[dict[str, Any]]:
    """Remove the condition of the given type if present."""
    for idx, cond in enumerate(conditions):
        if cond.get("type") == condition_type:
            del conditions[idx]
            break
    return conditions


def hub_conditions(hub: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the hub's condition ledger, creating it if needed."""
    status = hub.get("status") or {}
    hub["status"] = status
    conditions = status.get("conditions")
    if conditions is None:
        conditions = []
        status["conditions"] = conditions
    return conditions


def set_terminating_condition(hub: dict[str, Any]) -> None:
    """Set the Terminating condition."""
    set_condition(
        hub_conditions(hub),
        COND_TERMINATING,
        "True",
        REASON_DELETE_TIMESTAMP,
        "Multiclusterhub is being cleaned up.",
    )


def set_progressing_condition(hub: dict[str, Any], status: bool, reason: str, message: str) -> None:
    """Set the Progressing condition."""
    set_condition(hub_conditions(hub), COND_PROGRESSING, "True" if status else "False", reason, message)


def set_blocked_condition(hub: dict[str, Any], message: str) -> None:
    """Set the Blocked condition."""
    set_condition(hub_conditions(hub), COND_BLOCKED, "True", REASON_RESOURCE_BLOCKED, message)


def update_paused_condition(hub: dict[str, Any], paused: bool) -> None:
    """Flip Progressing between Paused and Resumed as the pause marker changes."""
    conditions = hub_conditions(hub)
    current = get_condition(conditions, COND_PROGRESSING)
    if paused:
        if current is None or current.get("reason") != REASON_PAUSED:
            set_condition(conditions, COND_PROGRESSING, "Unknown", REASON_PAUSED, "Multiclusterhub is paused")
    elif current is not None and current.get("reason") == REASON_PAUSED:
        set_condition(conditions, COND_PROGRESSING, "True", REASON_RESUMED, "Multiclusterhub is resumed")
