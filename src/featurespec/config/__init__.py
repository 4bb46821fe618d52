"""
Configuration management with typed Pydantic models.

Selects the collection driver and logging setup used to run extraction.
"""

from featurespec.config.loader import load_config
from featurespec.config.settings import (
    EngineConfig,
    LoggingConfig,
    MergeOrder,
    OpsConfig,
    OpsKind,
)

__all__ = [
    "EngineConfig",
    "LoggingConfig",
    "MergeOrder",
    "OpsConfig",
    "OpsKind",
    "load_config",
]
