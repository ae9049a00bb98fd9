"""Filesystem persistence for the account and issued certificates.

Layout under ``storage.config_dir`` (default ``~/.letsencrypt-certs``)::

    config.json                  {"email": "..."}
    accountKey.pem               account private key
    <domain>/key-<ts>.pem        certificate private key
    <domain>/csr-<ts>.pem
    <domain>/cert-<ts>.pem
    <domain>/chain-<ts>.pem

``<ts>`` is the UTC issuance time in compact ISO-8601 form, so repeated
issuances never overwrite each other and need no locking.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from acmer53.core.errors import StorageError

if TYPE_CHECKING:
    from acmer53.config.settings import StorageSettings

log = logging.getLogger(__name__)

MISSING_EMAIL = "Invalid config, email missing (run setup -e email)"

_PRIVATE_MODE = 0o600


def make_timestamp(now: datetime | None = None) -> str:
    """``2024-01-02T03:04:05.123Z`` with separators removed: ``20240102T030405123Z``."""
    now = (now or datetime.now(tz=UTC)).astimezone(UTC)
    return f"{now:%Y%m%dT%H%M%S}{now.microsecond // 1000:03d}Z"


def expand_path(path: str | Path) -> Path:
    return Path(path).expanduser()


class CertStore:
    """Read and write persisted client state.

    Parameters
    ----------
    settings:
        The ``storage`` config section.

    """

    def __init__(self, settings: StorageSettings) -> None:
        self._settings = settings

    # -- paths ----------------------------------------------------------------

    @property
    def config_dir(self) -> Path:
        return expand_path(self._settings.config_dir)

    @property
    def config_path(self) -> Path:
        return self.config_dir / self._settings.config_file

    @property
    def account_key_path(self) -> Path:
        return self.config_dir / self._settings.account_key_file

    def cert_dir(self, domain: str) -> Path:
        return self.config_dir / domain

    def ensure_config_dir(self) -> Path:
        """Create the config directory if needed and return it."""
        return self._mkdir(self.config_dir)

    @staticmethod
    def _mkdir(path: Path) -> Path:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Cannot create directory {path}: {exc}"
            raise StorageError(msg) from exc
        return path

    def _write(self, path: Path, content: str, *, private: bool = False) -> Path:
        try:
            if private:
                fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, _PRIVATE_MODE)
                # an existing file keeps its old mode through O_CREAT
                os.fchmod(fd, _PRIVATE_MODE)
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(content)
            else:
                path.write_text(content, encoding="utf-8")
        except OSError as exc:
            msg = f"Cannot write {path}: {exc}"
            raise StorageError(msg) from exc
        log.debug("Wrote %s", path)
        return path

    # -- config.json ----------------------------------------------------------

    def load_email(self) -> str | None:
        """Return the email from ``config.json``, or ``None`` if absent."""
        try:
            text = self.config_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            msg = f"Cannot read {self.config_path}: {exc}"
            raise StorageError(msg) from exc

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            msg = f"{self.config_path} is not valid JSON: {exc}"
            raise StorageError(msg) from exc
        if not isinstance(data, dict):
            return None
        return data.get("email") or None

    def save_email(self, email: str | None) -> Path:
        if not email:
            raise StorageError(MISSING_EMAIL)
        return self._write(self.config_path, json.dumps({"email": email}, indent=1))

    # -- account key ----------------------------------------------------------

    def load_account_key_pem(self) -> str | None:
        """Return the account key PEM, or ``None`` if not generated yet."""
        try:
            return self.account_key_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            msg = f"Cannot read {self.account_key_path}: {exc}"
            raise StorageError(msg) from exc

    def save_account_key_pem(self, key_pem: str) -> Path:
        return self._write(self.account_key_path, key_pem, private=True)

    # -- certificates ---------------------------------------------------------

    def write_pem(
        self,
        domain: str,
        kind: str,
        timestamp: str,
        pem: str,
        *,
        private: bool = False,
    ) -> Path:
        """Write ``<domain>/<kind>-<timestamp>.pem``."""
        directory = self._mkdir(self.cert_dir(domain))
        return self._write(directory / f"{kind}-{timestamp}.pem", pem, private=private)

    @staticmethod
    def read_certificate(path: str | Path) -> str:
        """Read a PEM certificate, expanding a leading ``~``."""
        resolved = expand_path(path)
        try:
            return resolved.read_text(encoding="utf-8")
        except OSError as exc:
            msg = f"Cannot read certificate {resolved}: {exc}"
            raise StorageError(msg) from exc
