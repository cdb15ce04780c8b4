"""
Pydantic models for YAML job configuration.
Provides schema validation with clear error messages before any network activity.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from archive_search.core.errors import InvalidInput
from archive_search.core.models import (
    DEFAULT_BASE_URL,
    DEFAULT_ENDPOINT,
    MAX_PAGESIZE,
    MIN_PAGESIZE,
    SearchJob,
)
from archive_search.http.policies import parse_perseverance

TimeValue = Union[datetime, date, str]


class JobConfig(BaseModel):
    """Configuration for one search job."""
    query: str = Field(..., min_length=1, description="A single search query")
    start_time: TimeValue = Field(..., description="Earliest time of the window")
    end_time: Optional[TimeValue] = Field(None, description="Latest time of the window; omit for an open window")
    pagesize: int = Field(MAX_PAGESIZE, ge=MIN_PAGESIZE, le=MAX_PAGESIZE, description="Records per page")
    perseverance: Optional[Union[int, float, str]] = Field(10, description="Attempts per request; 'inf' or null for unbounded")

    @field_validator("query", mode="before")
    @classmethod
    def validate_single_query(cls, v):
        if isinstance(v, (list, tuple)):
            raise ValueError("Can only provide 1 query at a time")
        return v

    @field_validator("perseverance")
    @classmethod
    def validate_perseverance(cls, v):
        return parse_perseverance(v)


class OutputConfig(BaseModel):
    """Where and how results are kept."""
    path: str = Field(".", description="Root folder for the data folder")
    read_finished: bool = Field(False, description="Only read already collected records")
    just_download: bool = Field(False, description="Do not load the records after collecting")
    progressbar: bool = Field(True, description="Show a progress bar")


class ApiConfig(BaseModel):
    """Remote API settings."""
    base_url: str = Field(DEFAULT_BASE_URL, description="API base URL")
    endpoint: str = Field(DEFAULT_ENDPOINT, description="Paginated search endpoint")
    timeout_s: int = Field(30, ge=1, le=600, description="HTTP timeout in seconds")
    min_interval_s: float = Field(1.0, ge=0, le=60, description="Minimum spacing between requests")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be a valid HTTP/HTTPS URL")
        return v


class SearchConfig(BaseModel):
    """Root configuration model for search jobs."""
    job: JobConfig
    output: OutputConfig = Field(default_factory=OutputConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)


def load_and_validate_config(config_path: str) -> SearchConfig:
    """
    Load and validate a search configuration from YAML file.

    Raises:
        InvalidInput: If the file is missing, malformed, or fails validation.
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except FileNotFoundError:
        raise InvalidInput(f"Configuration file not found: {config_path}") from None
    except yaml.YAMLError as e:
        raise InvalidInput(f"Invalid YAML in {config_path}: {e}") from e

    return validate_config(raw_config or {}, source=config_path)


def validate_config(raw_config: Any, source: str = "<config>") -> SearchConfig:
    """Validate an already-parsed configuration mapping."""
    if not isinstance(raw_config, dict):
        raise InvalidInput(f"Configuration in {source} must be a mapping")

    try:
        return SearchConfig(**raw_config)
    except ValidationError as e:
        error_messages = []
        for error in e.errors():
            field_path = ".".join(str(loc) for loc in error["loc"])
            error_messages.append(f"  {field_path}: {error['msg']}")

        raise InvalidInput(
            f"Configuration validation failed for {source}:\n" + "\n".join(error_messages)
        ) from e


def config_to_job(config: SearchConfig) -> SearchJob:
    """Convert a validated config into the engine's SearchJob."""
    return SearchJob(
        query=config.job.query,
        start_time=config.job.start_time,
        end_time=config.job.end_time,
        path=config.output.path,
        read_finished=config.output.read_finished,
        just_download=config.output.just_download,
        pagesize=config.job.pagesize,
        perseverance=config.job.perseverance,
        progressbar=config.output.progressbar,
        base_url=config.api.base_url,
        endpoint=config.api.endpoint,
    )
