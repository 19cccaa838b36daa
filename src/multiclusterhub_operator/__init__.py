"""Kubernetes operator converging a MultiClusterHub into its component resources."""

__version__ = "0.1.0"
