"""Utility modules for ts-reconcile."""
