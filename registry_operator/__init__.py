"""Reconciliation core for a schema registry operator: control loop, caches, conditions, status and patching."""

__version__ = "1.2.0.dev0"