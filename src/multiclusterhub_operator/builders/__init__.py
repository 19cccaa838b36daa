"""Desired-body builders for resources managed by the hub."""
