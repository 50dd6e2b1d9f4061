from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class FluxConfig(BaseModel):
    """Top-level configuration model."""

    database_url: Optional[str] = None
    default_retries: int = Field(default=0, ge=0)
    default_timeout_ms: Optional[float] = Field(default=None, gt=0)
    retry_backoff_base: Optional[float] = Field(default=None, gt=0)
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> FluxConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to FLUX_CONFIG env
            variable or 'flux.yaml' in the current directory.
    """

    config_path = path or os.getenv("FLUX_CONFIG", "flux.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = FluxConfig(**data)
    else:
        config = FluxConfig()

    env_db_url = os.getenv("FLUX_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    return config
