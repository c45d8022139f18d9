"""
Centralized configuration management for the WorkLedger engine.

Pydantic v2 settings management to enforce strict validation and
fast-failure on invalid configuration. Settings are read once per
process and treated as immutable afterwards.
"""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# -------------------------------------------------------------------------
# Reusable Type Aliases
# -------------------------------------------------------------------------

PositiveCount = Annotated[
    int,
    Field(ge=1, description="Strictly positive integer limit"),
]


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Application settings parsed from the environment.

    All variables use the ``WORKLEDGER_`` prefix, e.g.
    ``WORKLEDGER_LOG_LEVEL=debug``.
    """

    app_title: str = Field(
        default="workledger",
        description="Title reported by the HTTP surface",
    )

    app_version: str = Field(
        default="0.3.0",
        description="Version reported by the HTTP surface",
    )

    log_level: str = Field(
        default="INFO",
        description="Root logging level for the process",
    )

    # ---------------------------------------------------------------------
    # Report assembly
    # ---------------------------------------------------------------------

    default_page_size: Literal["A4", "A3", "Letter"] = Field(
        default="A4",
        description="Page size used when a layout or request omits one",
    )

    default_orientation: Literal["portrait", "landscape"] = Field(
        default="portrait",
        description="Orientation used when a layout or request omits one",
    )

    max_report_entries: PositiveCount = Field(
        default=200,
        description="Upper bound on work entries assembled into one report",
    )

    report_fetch_workers: PositiveCount = Field(
        default=4,
        description="Parallel fan-out width for bulk entry/template reads",
    )

    # ---------------------------------------------------------------------
    # Contract layouts
    # ---------------------------------------------------------------------

    initial_contract_layout: str = Field(
        default="simple_v1",
        description="layout_id assigned to a contract by initialize_contract",
    )

    model_config = SettingsConfigDict(
        env_prefix="WORKLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        normalized = v.strip().upper()
        if normalized not in allowed:
            raise ValueError(
                f"Unsupported log level '{v}'. "
                f"Allowed values: {sorted(allowed)}"
            )
        return normalized


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings accessor.

    Parsed exactly once per process; tests that need different values
    construct ``Settings(...)`` directly instead.
    """
    return Settings()
