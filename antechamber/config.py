from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel

from .extraction.models import DEFAULT_MODEL, ExtractionConfig
from .workflow.policy import RetryPolicy


class LLMConfig(BaseModel):
    """Model selection and credentials for field extraction."""

    model: str = DEFAULT_MODEL
    api_key: Optional[str] = None


class AntechamberConfig(BaseModel):
    """Top-level configuration model."""

    database_url: Optional[str] = None
    log_level: str = "INFO"
    retry: RetryPolicy = RetryPolicy()
    extraction: ExtractionConfig = ExtractionConfig()
    llm: LLMConfig = LLMConfig()


def load_config(path: Optional[str] = None) -> AntechamberConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to ANTECHAMBER_CONFIG
            env variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("ANTECHAMBER_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = AntechamberConfig(**data)
    else:
        config = AntechamberConfig()

    env_db_url = os.getenv("ANTECHAMBER_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    env_log_level = os.getenv("ANTECHAMBER_LOG_LEVEL")
    if env_log_level:
        config.log_level = env_log_level.upper()
    env_api_key = os.getenv("ANTHROPIC_API_KEY")
    if env_api_key and not config.llm.api_key:
        config.llm.api_key = env_api_key
    return config


def build_llm_client(config: Optional[AntechamberConfig] = None):
    """Create the pydantic-ai backed LLM client described by ``config``."""
    from .extraction.pydantic_ai_client import PydanticAIClient

    config = config or load_config()
    return PydanticAIClient(default_model=config.llm.model, api_key=config.llm.api_key)
