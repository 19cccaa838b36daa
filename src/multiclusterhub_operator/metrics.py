"""Prometheus metrics for the MultiClusterHub Operator."""

from prometheus_client import Counter, Gauge, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "multiclusterhub_operator_reconcile_total",
    "Total number of reconciliations",
    ["result"],
)

reconcile_duration_seconds = Histogram(
    "multiclusterhub_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

error_total = Counter(
    "multiclusterhub_operator_error_total",
    "Total number of reconcile errors",
    ["error_type"],
)

# Managed resource operations
resource_operations_total = Counter(
    "multiclusterhub_operator_resource_operations_total",
    "Total number of create/patch/delete operations on managed resources",
    ["kind", "operation", "result"],
)

# Finalizer teardown
teardown_stage_total = Counter(
    "multiclusterhub_operator_teardown_stage_total",
    "Finalizer teardown stage executions",
    ["stage", "result"],
)

# Watch correlation
watch_events_total = Counter(
    "multiclusterhub_operator_watch_events_total",
    "Watch events seen by the correlation layer",
    ["watch", "result"],
)

workqueue_depth = Gauge(
    "multiclusterhub_operator_workqueue_depth",
    "Number of reconcile requests waiting in the work queue",
)

# API call metrics
api_call_total = Counter(
    "multiclusterhub_operator_api_call_total",
    "Total number of API calls",
    ["operation", "result"],
)

api_call_duration_seconds = Histogram(
    "multiclusterhub_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)
