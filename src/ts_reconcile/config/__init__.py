"""
Configuration package for ts-reconcile.

YAML configuration files validated by Pydantic models.
"""

from .manager import SAMPLE_CONFIG, ConfigManager
from .schema import (
    CatalogConfig,
    LoggingConfig,
    ReconcileConfig,
    ReconcilerConfig,
    normalize_language_tag,
)

__all__ = [
    "SAMPLE_CONFIG",
    "ConfigManager",
    "CatalogConfig",
    "LoggingConfig",
    "ReconcileConfig",
    "ReconcilerConfig",
    "normalize_language_tag",
]
