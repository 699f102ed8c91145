"""Unified configuration via pydantic-settings."""

import logging
from pathlib import Path
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class WebbyConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="WEBBY_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Identity
    name: str = "Webby"
    alias: str | None = None

    # Adapter
    adapter: str = "shell"

    # Auth & rate limiting
    allowed_user_ids: Annotated[set[str], NoDecode] = set()
    rate_limit_rpm: int = 0
    rate_limit_burst: int = 5

    # Error channel
    error_history_size: int = 100

    # Logging
    log_level: str = "INFO"
    log_dir: Path | None = None
    log_max_bytes: int = 10_485_760
    log_backup_count: int = 5

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v

    @field_validator("alias", mode="before")
    @classmethod
    def blank_alias_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("allowed_user_ids", mode="before")
    @classmethod
    def parse_allowed_user_ids(cls, v: set[str] | str | int) -> set[str]:
        if isinstance(v, int):
            return {str(v)}
        if isinstance(v, str):
            return {s.strip() for s in v.split(",") if s.strip()}
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {v}")
        return level
