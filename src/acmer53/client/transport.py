"""HTTPS transport for the legacy ACME API.

Sends plain GETs and JWS-signed POSTs and hands back the status code,
headers and raw body without interpreting them.  The only protocol
knowledge here is replay-nonce threading: every signed exchange
consumes the session nonce and stores the one returned by the CA,
whether the response is a success or an error.

Network failures (DNS resolution, TLS handshake, connection reset)
raise :class:`~acmer53.core.errors.TransportError` and leave the nonce
untouched.
"""

from __future__ import annotations

import json
import logging
import re
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from acmer53 import __version__
from acmer53.core.errors import TransportError
from acmer53.core.jws import sign
from acmer53.logging.sanitize import sanitize_for_logs

if TYPE_CHECKING:
    from email.message import Message

    from acmer53.client.session import AcmeSession
    from acmer53.config.settings import CASettings

log = logging.getLogger(__name__)

NONCE_HEADER = "replay-nonce"

# <https://ca/acme/issuer-cert>;rel="up"  (whitespace and quotes optional)
_LINK_RE = re.compile(r'<([^>]*)>\s*;\s*rel="?([^",;]+)"?')


@dataclass(frozen=True)
class AcmeResponse:
    """Status / headers / body triple from one exchange.

    Header names are lower-cased; repeated headers are joined with
    ``", "`` as permitted by RFC 9110 for list-valued fields.
    """

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower())

    @property
    def nonce(self) -> str | None:
        """The ``Replay-Nonce`` header value, if present."""
        return self.header(NONCE_HEADER)

    @property
    def location(self) -> str | None:
        """The ``Location`` header value, if present."""
        return self.header("location")

    def link(self, rel: str) -> str | None:
        """Return the first ``Link`` target whose ``rel`` is *rel*."""
        value = self.header("link")
        if not value:
            return None
        for match in _LINK_RE.finditer(value):
            if match.group(2) == rel:
                return match.group(1)
        return None

    def json(self) -> Any:  # noqa: ANN401
        """Decode the body as JSON (raises ``ValueError`` on bad input)."""
        return json.loads(self.body)

    @property
    def ok(self) -> bool:
        """``True`` for 2xx status codes."""
        return 200 <= self.status_code < 300  # noqa: PLR2004


def _collect_headers(message: Message | None) -> dict[str, str]:
    if message is None:
        return {}
    headers: dict[str, str] = {}
    for name in {key.lower() for key in message.keys()}:  # noqa: SIM118
        values = message.get_all(name) or []
        headers[name] = ", ".join(values)
    return headers


class AcmeTransport:
    """urllib-based HTTPS client bound to one CA.

    Parameters
    ----------
    ca_settings:
        The ``ca`` configuration section (base URL, TLS trust, timeout).

    """

    def __init__(self, ca_settings: CASettings) -> None:
        self._settings = ca_settings
        self._ssl_ctx: ssl.SSLContext | None = None

    def acme_url(self, resource: str) -> str:
        """Endpoint of a legacy ACME resource, e.g. ``{url}/acme/new-reg``."""
        return f"{self._settings.url}/acme/{resource}"

    @property
    def directory_url(self) -> str:
        """``GET`` target used to obtain the first nonce of a session."""
        return f"{self._settings.url}/directory"

    def _get_ssl_context(self) -> ssl.SSLContext:
        """Build (and cache) the TLS context for CA connections."""
        if self._ssl_ctx is not None:
            return self._ssl_ctx

        ctx = ssl.create_default_context()
        if self._settings.ca_cert_path:
            ctx.load_verify_locations(self._settings.ca_cert_path)
        if not self._settings.verify_ssl:
            log.warning("TLS verification of %s is disabled", self._settings.url)
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE

        self._ssl_ctx = ctx
        return ctx

    def _open(self, req: urllib.request.Request) -> AcmeResponse:
        """Perform *req*; HTTP error statuses are returned, not raised."""
        handler = urllib.request.HTTPSHandler(context=self._get_ssl_context())
        opener = urllib.request.build_opener(handler)
        try:
            with opener.open(req, timeout=self._settings.timeout_seconds) as resp:
                body = resp.read()
                return AcmeResponse(
                    status_code=resp.status,
                    headers=_collect_headers(resp.headers),
                    body=body,
                )
        except urllib.error.HTTPError as exc:
            try:
                body = exc.read()
            except OSError:
                body = b""
            return AcmeResponse(
                status_code=exc.code,
                headers=_collect_headers(exc.headers),
                body=body,
            )
        except (urllib.error.URLError, OSError) as exc:
            msg = f"{req.get_method()} {req.full_url} failed: {exc}"
            raise TransportError(msg) from exc

    def get(self, url: str) -> AcmeResponse:
        """Unsigned ``GET`` (directory, issuer certificate, challenge status)."""
        try:
            req = urllib.request.Request(
                url,
                method="GET",
                headers={"User-Agent": self._user_agent},
            )
        except ValueError as exc:
            msg = f"GET {url!r} failed: {exc}"
            raise TransportError(msg) from exc
        response = self._open(req)
        log.debug("GET %s -> %d", url, response.status_code)
        return response

    def post_json(self, url: str, data: bytes) -> AcmeResponse:
        """``POST`` a pre-serialized JSON body."""
        try:
            req = urllib.request.Request(
                url,
                data=data,
                method="POST",
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": self._user_agent,
                },
            )
        except ValueError as exc:
            msg = f"POST {url!r} failed: {exc}"
            raise TransportError(msg) from exc
        response = self._open(req)
        log.debug("POST %s -> %d", url, response.status_code)
        return response

    def fetch_nonce(self) -> str | None:
        """Read a fresh replay nonce from the directory endpoint."""
        response = self.get(self.directory_url)
        if response.nonce is None:
            log.warning(
                "Directory %s returned no %s header",
                self.directory_url,
                NONCE_HEADER,
            )
        return response.nonce

    def signed_request(
        self,
        session: AcmeSession,
        url: str,
        payload: Any,  # noqa: ANN401
    ) -> AcmeResponse:
        """Sign *payload* with the session key and ``POST`` it to *url*.

        The session's exchange lock is held from nonce read to nonce
        update so that one session never has two requests in flight.
        """
        with session.exchange_lock:
            if session.nonce is None:
                session.nonce = self.fetch_nonce()
            if session.nonce is None:
                msg = f"No {NONCE_HEADER} available from {self.directory_url}"
                raise TransportError(msg)

            envelope = sign(session.account_key, session.nonce, payload)
            log.debug(
                "Signed request to %s: %s",
                url,
                sanitize_for_logs(payload),
            )

            response = self.post_json(url, envelope.to_json())

            # The CA rotates the nonce on every exchange, errors included.
            session.nonce = response.nonce
        return response

    @property
    def _user_agent(self) -> str:
        return self._settings.user_agent or f"acmer53/{__version__}"
