"""Shared defaults for stepwise."""

DEFAULT_STORAGE_KEY = "wizard-form-data"
DEFAULT_CONFIG_PATH = "stepwise.yaml"
REDIS_KEY_PREFIX = "stepwise:"
