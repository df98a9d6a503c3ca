from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel

from .constants import DEFAULT_CONFIG_PATH, DEFAULT_STORAGE_KEY


class WizardOptions(BaseModel):
    """Behavioural options applied to every workflow controller."""

    allow_step_skipping: bool = False
    persist_state: bool = True
    storage_key: str = DEFAULT_STORAGE_KEY
    clear_on_complete: bool = False


class StorageConfig(BaseModel):
    """Storage backend configuration."""

    url: Optional[str] = None


class StepwiseConfig(BaseModel):
    """Top-level configuration model."""

    wizard: WizardOptions = WizardOptions()
    storage: StorageConfig = StorageConfig()


def load_config(path: Optional[str] = None) -> StepwiseConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to STEPWISE_CONFIG env
            variable or 'stepwise.yaml' in the current directory.
    """

    config_path = path or os.getenv("STEPWISE_CONFIG", DEFAULT_CONFIG_PATH)
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = StepwiseConfig(**data)
    else:
        config = StepwiseConfig()

    env_storage_url = os.getenv("STEPWISE_STORAGE_URL")
    if env_storage_url:
        config.storage.url = env_storage_url
    return config
