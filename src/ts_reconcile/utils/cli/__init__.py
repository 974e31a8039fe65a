"""Command line utilities for ts-reconcile."""
