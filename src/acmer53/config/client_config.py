"""acmer53 configuration loader.

Lifecycle::

    # 1. CLI creates the singleton (once, at startup)
    Acmer53Config(config_file="/etc/acmer53/config.yaml")
    # or, with no file, built-in defaults only
    Acmer53Config.from_defaults()

    # 2. Any module retrieves it afterwards
    from acmer53.config import get_config
    cfg = get_config()
    cfg.settings.ca.url  # typed access

    # 3. Dynamic access
    cfg.get("dns.provider_config.region", default="us-east-1")
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from acmer53.config.settings import Acmer53Settings, build_settings

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_BUILTIN_PROVIDERS = frozenset({"route53"})
_EXT_PREFIX = "ext:"
_CLASS_PATH_RE = re.compile(
    r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)+$",
)

_MIN_RSA_KEY_SIZE = 2048

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton reference
# ---------------------------------------------------------------------------
_instance: Acmer53Config | None = None


def get_config() -> Acmer53Config:
    """Return the initialised configuration singleton.

    Raises :class:`RuntimeError` if :class:`Acmer53Config` has not been
    loaded yet.
    """
    if _instance is None:
        msg = "Configuration not loaded yet; create Acmer53Config first"
        raise RuntimeError(msg)
    return _instance


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when schema or cross-field validation finds problems."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _substitute(value: str, path: str) -> str:
    """Expand a whole-string ``${VAR}`` / ``${VAR:-default}`` reference."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    name, fallback = match.groups()
    if name in os.environ:
        return os.environ[name]
    if fallback is not None:
        return fallback
    msg = f"{path}: environment variable {name} is unset and has no default"
    raise ConfigValidationError([msg])


def _resolve_env_vars(node: Any, path: str = "") -> Any:  # noqa: ANN401
    """Return a copy of *node* with env references expanded in every string."""
    if isinstance(node, str):
        return _substitute(node, path)
    if isinstance(node, dict):
        return {
            key: _resolve_env_vars(value, f"{path}.{key}" if path else str(key))
            for key, value in node.items()
        }
    if isinstance(node, list):
        return [_resolve_env_vars(item, f"{path}[{i}]") for i, item in enumerate(node)]
    return node


def _read_config_file(config_file: Path) -> dict:
    """Parse a YAML or JSON config file into a dict."""
    try:
        text = config_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigValidationError(
            [f"Cannot read config file {config_file}: {exc}"],
        ) from exc

    try:
        if config_file.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigValidationError(
            [f"Cannot parse config file {config_file}: {exc}"],
        ) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(
            [f"Config file {config_file} must contain a mapping at top level"],
        )
    return data


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class Acmer53Config:
    """Central configuration for the acmer53 client.

    The JSON schema is bundled at ``config/schema.json``.  After
    construction the typed settings tree is available at
    :pyattr:`settings` and the raw dict via :pyattr:`data` /
    :pymeth:`get`.

    Parameters
    ----------
    config_file:
        Path to a YAML/JSON configuration file, or ``None`` to run on
        built-in defaults.
    data:
        Raw config mapping, used instead of *config_file* (tests,
        :meth:`from_defaults`).

    """

    def __init__(
        self,
        *,
        config_file: str | Path | None = None,
        data: dict | None = None,
    ) -> None:
        global _instance  # noqa: PLW0603

        self._source: str | None = None
        if config_file is not None:
            path = Path(config_file).expanduser()
            self._source = str(path)
            raw = _read_config_file(path)
        else:
            raw = data or {}

        raw = _resolve_env_vars(raw)
        self._data = raw
        self._validate_schema()
        self.additional_checks()

        self._settings: Acmer53Settings = build_settings(self._data)
        _instance = self
        log.debug("Configuration loaded from %s", self._source or "defaults")

    @classmethod
    def from_defaults(cls) -> Acmer53Config:
        """Create the singleton with built-in defaults only."""
        return cls(data={})

    # -- typed access -------------------------------------------------------

    @property
    def settings(self) -> Acmer53Settings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    @property
    def data(self) -> dict:
        """Raw config data after env-var resolution."""
        return self._data

    def get(self, path: str, default: Any = None) -> Any:  # noqa: ANN401
        """Look up a dot-separated *path* in the raw data."""
        node: Any = self._data
        for part in path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    # -- validation ---------------------------------------------------------

    def _validate_schema(self) -> None:
        schema = json.loads(_SCHEMA_PATH.read_text(encoding="utf-8"))
        validator = jsonschema.Draft202012Validator(schema)
        errors = [
            f"{'.'.join(str(p) for p in err.absolute_path) or '<root>'}: {err.message}"
            for err in sorted(validator.iter_errors(self._data), key=str)
        ]
        if errors:
            raise ConfigValidationError(errors)

    def additional_checks(self) -> None:
        """Semantic & cross-field validation, run after schema validation."""
        errors: list[str] = []

        ca = self._data.get("ca") or {}
        keys = self._data.get("keys") or {}
        dns_cfg = self._data.get("dns") or {}
        challenge = self._data.get("challenge") or {}

        # -- CA --
        ca_url = ca.get("url", "")
        if ca_url.endswith("/"):
            errors.append(f"ca.url must not end with '/' (got '{ca_url}')")
        if ca.get("verify_ssl") is False:
            log.warning("Config warning: ca.verify_ssl is false")

        # -- keys --
        key_size = keys.get("rsa_key_size", _MIN_RSA_KEY_SIZE)
        if key_size < _MIN_RSA_KEY_SIZE:
            errors.append(
                f"keys.rsa_key_size ({key_size}) must be >= {_MIN_RSA_KEY_SIZE}",
            )

        # -- DNS provider --
        provider = dns_cfg.get("provider", "route53")
        if provider.startswith(_EXT_PREFIX):
            class_path = provider[len(_EXT_PREFIX) :]
            if not _CLASS_PATH_RE.match(class_path):
                errors.append(
                    f"dns.provider '{provider}' must be 'ext:' followed by a "
                    "dotted module.Class path",
                )
        elif provider not in _BUILTIN_PROVIDERS:
            errors.append(
                f"dns.provider '{provider}' is not a built-in provider "
                f"({', '.join(sorted(_BUILTIN_PROVIDERS))}) or an 'ext:' path",
            )

        # -- backoff windows --
        propagation = dns_cfg.get("propagation") or {}
        interval = propagation.get("interval_seconds", 1.0)
        max_interval = propagation.get("max_interval_seconds", 10.0)
        if interval > max_interval:
            errors.append(
                f"dns.propagation.interval_seconds ({interval}) must be <= "
                f"dns.propagation.max_interval_seconds ({max_interval})",
            )

        poll_interval = challenge.get("poll_interval_seconds", 1.0)
        poll_max = challenge.get("poll_max_interval_seconds", 10.0)
        if poll_interval > poll_max:
            errors.append(
                f"challenge.poll_interval_seconds ({poll_interval}) must be <= "
                f"challenge.poll_max_interval_seconds ({poll_max})",
            )

        if errors:
            raise ConfigValidationError(errors)

    # -- helpers ------------------------------------------------------------

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton -- testing only."""
        global _instance  # noqa: PLW0603
        _instance = None

    def __repr__(self) -> str:
        return f"<Acmer53Config config_file={self._source or '-'}>"
