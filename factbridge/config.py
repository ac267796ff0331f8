# coding: utf-8
"""
Runner configuration for factbridge.

Settings come from code or from the environment:

    FACTBRIDGE_RULES_PATH   rule file or directory (required)
    FACTBRIDGE_LOG_PATH     execution log destination (optional)
    FACTBRIDGE_MAX_FIRES    cap on rule firings per run (optional)
"""
from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "FACTBRIDGE_"


class RunnerConfig(BaseModel):
    """Parameters of a RuleRunner."""

    rules_path: str = Field(..., description="Rule file or directory of rule files")
    log_path: str = Field(default="", description="Execution log file; empty disables the log")
    max_fires: Optional[int] = Field(default=None, description="Stop after this many rule firings")

    model_config = {"extra": "forbid"}

    @field_validator("rules_path")
    @classmethod
    def validate_rules_path(cls, v: str) -> str:
        """Ensure a rule source is given."""
        if not v or not v.strip():
            raise ValueError("rules_path cannot be empty")
        return v.strip()

    @field_validator("max_fires")
    @classmethod
    def validate_max_fires(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("max_fires must be positive")
        return v

    @property
    def log_enabled(self) -> bool:
        return bool(self.log_path)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX, **overrides) -> "RunnerConfig":
        """
        Build a config from environment variables.

        Args:
            prefix: Variable name prefix
            **overrides: Values taking precedence over the environment

        Raises:
            pydantic.ValidationError: If the rule path is missing or a
                value is invalid
        """
        values = {
            "rules_path": os.getenv(f"{prefix}RULES_PATH", ""),
            "log_path": os.getenv(f"{prefix}LOG_PATH", ""),
        }
        max_fires = os.getenv(f"{prefix}MAX_FIRES")
        if max_fires:
            values["max_fires"] = max_fires
        values.update(overrides)
        return cls.model_validate(values)
