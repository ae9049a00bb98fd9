"""Configuration subsystem for acmer53.

Public API::

    from acmer53.config import get_config, Acmer53Config

    # At startup (CLI only):
    Acmer53Config(config_file="config.yaml")

    # Everywhere else:
    cfg = get_config()
    url = cfg.settings.ca.url
"""

from acmer53.config.client_config import (
    Acmer53Config,
    ConfigValidationError,
    get_config,
)
from acmer53.config.settings import (
    Acmer53Settings,
    CASettings,
    ChallengeSettings,
    DnsSettings,
    KeySettings,
    LoggingSettings,
    PropagationSettings,
    StorageSettings,
    VerifyTxtSettings,
    build_settings,
)

__all__ = [
    "Acmer53Config",
    "Acmer53Settings",
    "CASettings",
    "ChallengeSettings",
    "ConfigValidationError",
    "DnsSettings",
    "KeySettings",
    "LoggingSettings",
    "PropagationSettings",
    "StorageSettings",
    "VerifyTxtSettings",
    "build_settings",
    "get_config",
]
