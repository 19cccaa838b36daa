"""Reconcile handlers for the MultiClusterHub resource."""

from .hub import HubReconciler
from .status import StatusSync
from .teardown import TeardownPipeline
from .watches import Watch, build_watches

__all__ = [
    "HubReconciler",
    "StatusSync",
    "TeardownPipeline",
    "Watch",
    "build_watches",
]
