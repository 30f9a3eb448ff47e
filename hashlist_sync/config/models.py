"""Pydantic models describing the hashlist-sync configuration file."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_ARCHIVE_URL = "https://github.com/debridmediamanager/hashlists/zipball/main/"


class ScheduleType(str, Enum):
    """Scheduler modes for periodic syncs."""

    CRON = "cron"
    INTERVAL = "interval"
    ONCE = "once"


class ScheduleConfig(BaseModel):
    """Configuration describing when the sync job should run."""

    type: ScheduleType = Field(default=ScheduleType.CRON)
    value: Any = Field(
        default="0 * * * *",
        description="Cron expression, interval seconds or ISO datetime, depending on type.",
    )

    @model_validator(mode="after")
    def _validate_value(self) -> "ScheduleConfig":
        if self.type is ScheduleType.CRON and not isinstance(self.value, str):
            raise ValueError("Cron schedule requires string expression")
        if self.type is ScheduleType.INTERVAL and not isinstance(self.value, (int, float, dict)):
            raise ValueError("Interval schedule requires seconds (int/float) or kwargs dict")
        if (
            self.type is ScheduleType.ONCE
            and self.value is not None
            and not isinstance(self.value, str)
        ):
            raise ValueError("Once schedule expects ISO datetime string or null")
        return self


class ArchiveConfig(BaseModel):
    """Where and how the hashlist archive is downloaded."""

    url: str = DEFAULT_ARCHIVE_URL
    timeout: float = 600.0
    user_agent: str = "curl/7.54"
    page_glob: str = "*.html"
    keep_downloads: bool = False
    chunk_size: int = 64 * 1024

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be > 0")
        return value

    @field_validator("chunk_size")
    @classmethod
    def _positive_chunk(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("chunk_size must be > 0")
        return value


class ElasticConfig(BaseModel):
    """Connection and batching settings for the search index."""

    url: str = "http://localhost:9200"
    index: str = "dmm-entries"
    batch_size: int = 5000
    request_timeout: float = 120.0
    api_key: str | None = None
    username: str | None = None
    password: str | None = None
    verify_certs: bool = True

    @field_validator("batch_size")
    @classmethod
    def _positive_batch(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("batch_size must be > 0")
        return value

    @model_validator(mode="after")
    def _validate_auth(self) -> "ElasticConfig":
        if (self.username is None) != (self.password is None):
            raise ValueError("username and password must be configured together")
        return self


class SyncConfig(BaseModel):
    """Top-level configuration for a sync deployment."""

    archive: ArchiveConfig = Field(default_factory=ArchiveConfig)
    elasticsearch: ElasticConfig = Field(default_factory=ElasticConfig)
    sink: Literal["elasticsearch", "file"] = "elasticsearch"
    state_file: str = "parsedPages.json"
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    enrichment_enabled: bool = True
    enable_progress_bar: bool = True

    @field_validator("state_file")
    @classmethod
    def _plain_filename(cls, value: str) -> str:
        value = value.strip()
        if not value or "/" in value or "\\" in value:
            raise ValueError("state_file must be a plain file name")
        return value


__all__ = [
    "ArchiveConfig",
    "DEFAULT_ARCHIVE_URL",
    "ElasticConfig",
    "ScheduleConfig",
    "ScheduleType",
    "SyncConfig",
]
