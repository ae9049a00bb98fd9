"""DNS provider registry.

Resolves ``dns.provider`` to a :class:`~acmer53.dns.base.DnsProvider`:
either a built-in name or ``ext:package.module.ClassName``.

Usage::

    from acmer53.dns.registry import load_provider

    provider = load_provider(settings.dns)
    zone_id = provider.find_hosted_zone_id("example.com")
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING

from acmer53.core.errors import DnsProviderError
from acmer53.dns.base import DnsProvider

if TYPE_CHECKING:
    from acmer53.config.settings import DnsSettings

log = logging.getLogger(__name__)

# config name -> (module_path, class_name)
_BUILTIN_PROVIDERS: dict[str, tuple[str, str]] = {
    "route53": ("acmer53.dns.route53", "Route53Provider"),
}

_EXT_PREFIX = "ext:"


def _load_class(module_path: str, cls_name: str, label: str) -> type[DnsProvider]:
    try:
        module = importlib.import_module(module_path)
        cls = getattr(module, cls_name)
    except (ImportError, AttributeError) as exc:
        msg = f"Cannot load DNS provider '{label}': {exc}"
        raise DnsProviderError(msg) from exc

    if not (isinstance(cls, type) and issubclass(cls, DnsProvider)):
        msg = f"DNS provider '{label}' must be a subclass of DnsProvider"
        raise DnsProviderError(msg)
    return cls


def load_provider(settings: DnsSettings) -> DnsProvider:
    """Instantiate the provider named by *settings*.

    Raises
    ------
    DnsProviderError
        Unknown name, import failure, or a class that is not a
        :class:`DnsProvider`.

    """
    name = settings.provider
    if name in _BUILTIN_PROVIDERS:
        cls = _load_class(*_BUILTIN_PROVIDERS[name], label=name)
    elif name.startswith(_EXT_PREFIX):
        fqn = name[len(_EXT_PREFIX) :]
        module_path, _, cls_name = fqn.rpartition(".")
        if not module_path:
            msg = (
                f"Invalid external DNS provider '{fqn}': must be fully "
                "qualified (e.g. 'mypackage.module.ClassName')"
            )
            raise DnsProviderError(msg)
        cls = _load_class(module_path, cls_name, label=name)
    else:
        msg = f"Unknown DNS provider '{name}'"
        raise DnsProviderError(msg)

    provider = cls(settings.provider_config, settings.record_ttl)
    log.debug("Loaded DNS provider %s", name)
    return provider
