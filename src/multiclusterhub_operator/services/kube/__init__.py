"""Kubernetes client wrapper."""

from .client import ClusterClient, load_kube_config

__all__ = ["ClusterClient", "load_kube_config"]
