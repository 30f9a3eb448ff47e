"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    ArchiveConfig,
    ElasticConfig,
    ScheduleConfig,
    ScheduleType,
    SyncConfig,
)

__all__ = [
    "ArchiveConfig",
    "ConfigLocator",
    "ConfigRepository",
    "ElasticConfig",
    "ScheduleConfig",
    "ScheduleType",
    "SyncConfig",
]
