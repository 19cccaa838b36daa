"""Utility functions for the MultiClusterHub Operator."""

from .conditions import (
    get_condition,
    remove_condition,
    set_blocked_condition,
    set_condition,
    set_progressing_condition,
    set_terminating_condition,
    update_paused_condition,
)
from .context import (
    get_context_dict,
    get_correlation_id,
    new_correlation_id,
    with_correlation_id,
)
from .deploy import Deployer
from .diff import covers, field_delta, validate
from .events import emit_event
from .rate_limit import rate_limit_k8s
from .workqueue import WorkQueue

__all__ = [
    "set_condition",
    "get_condition",
    "remove_condition",
    "set_terminating_condition",
    "set_progressing_condition",
    "set_blocked_condition",
    "update_paused_condition",
    "new_correlation_id",
    "get_correlation_id",
    "with_correlation_id",
    "get_context_dict",
    "Deployer",
    "covers",
    "field_delta",
    "validate",
    "emit_event",
    "rate_limit_k8s",
    "WorkQueue",
]
